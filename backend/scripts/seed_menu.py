#!/usr/bin/env python
"""Idempotent seed script for the menu catalog.

Usage:
    python backend/scripts/seed_menu.py              # seed normally
    python backend/scripts/seed_menu.py --dry-run    # run logic then rollback (no DB changes)
    python backend/scripts/seed_menu.py --show       # print the menu after seeding
"""
from __future__ import annotations
import os, sys, argparse, textwrap
from sqlalchemy import select, text

# Allow running from repo root
sys.path.append(os.path.abspath('backend'))

from pizzeria import create_app, get_db  # type: ignore
from pizzeria.models.base import Base
from pizzeria.models.menu import Category, Product
from seeds.menu import CATEGORIES, PRODUCTS


def ensure_categories(session):
    existing = {c.name: c for c in session.execute(select(Category)).scalars().all()}
    created = 0
    for name, order in CATEGORIES.items():
        if name not in existing:
            cat = Category(name=name, display_order=order)
            session.add(cat)
            existing[name] = cat
            created += 1
    session.flush()
    return existing, created


def ensure_products(session, categories):
    existing = {(p.category_id, p.name) for p in session.execute(select(Product)).scalars().all()}
    created = 0
    for position, (cat_name, name, description, price_cents) in enumerate(PRODUCTS):
        cat = categories.get(cat_name)
        if cat is None:
            print(f"[WARN] Unknown category for product {name}: {cat_name}")
            continue
        if (cat.id, name) in existing:
            continue
        session.add(Product(
            category_id=cat.id,
            name=name,
            description=description,
            price_cents=price_cents,
            display_order=position,
        ))
        created += 1
    return created


def print_menu(session):
    cats = session.execute(select(Category).order_by(Category.display_order)).scalars().all()
    for cat in cats:
        print(cat.name)
        for p in session.execute(select(Product).where(Product.category_id == cat.id).order_by(Product.display_order)).scalars():
            print(f"  {p.name.ljust(28)} R$ {p.price_cents / 100:>7.2f}")


def parse_args():
    p = argparse.ArgumentParser(
        description="Seed the menu catalog",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=textwrap.dedent("""Examples:\n  seed normally: seed_menu.py\n  dry run: seed_menu.py --dry-run\n""")
    )
    p.add_argument('--dry-run', action='store_true', help='Rollback after operations (no commit)')
    p.add_argument('--show', action='store_true', help='Print the menu after seeding')
    return p.parse_args()


def main():
    args = parse_args()
    app = create_app()
    with app.app_context():
        session = get_db()
        try:
            session.execute(text('SELECT 1 FROM products LIMIT 1'))
        except Exception:
            # Auto-create schema for bootstrap; in real env prefer alembic upgrade
            session.rollback()
            Base.metadata.create_all(session.get_bind())
        finally:
            session.commit()

    with app.app_context():
        session = get_db()
        categories, created_c = ensure_categories(session)
        created_p = ensure_products(session, categories)
        if args.dry_run:
            session.rollback()
            print(f"[DRY-RUN] (rolled back) Categories would create: {created_c}, Products would create: {created_p}")
        else:
            session.commit()
            print(f"[DONE] Categories created: {created_c}, Products created: {created_p}")
        if args.show:
            print_menu(session)


if __name__ == '__main__':
    main()
