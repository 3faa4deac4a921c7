from flask import Blueprint
from sqlalchemy import select
from pizzeria import get_db
from pizzeria.models.menu import Category, Product

menu_bp = Blueprint('menu', __name__)


@menu_bp.get('')
def get_menu():
    """Available products grouped by category, both in display order."""
    session = get_db()
    categories = session.execute(select(Category).order_by(Category.display_order, Category.name)).scalars().all()
    products = session.execute(
        select(Product).where(Product.is_available.is_(True)).order_by(Product.display_order, Product.name)
    ).scalars().all()
    by_category = {}
    for p in products:
        by_category.setdefault(p.category_id, []).append(p.to_dict())
    return {
        'categories': [
            {'id': c.id, 'name': c.name, 'products': by_category.get(c.id, [])}
            for c in categories
            if by_category.get(c.id)
        ]
    }
