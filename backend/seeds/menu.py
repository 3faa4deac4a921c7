"""Seed definitions for the menu catalog.
(Consumed by scripts/seed_menu.py; single source of truth for the starter menu.)
"""

# Category name -> display order
CATEGORIES = {
    'Pizzas Salgadas': 1,
    'Pizzas Doces': 2,
    'Burgers': 3,
    'Bebidas': 4,
}

# (category, name, description, price_cents)
PRODUCTS = [
    ('Pizzas Salgadas', 'Calabresa', 'Calabresa, cebola, azeitona e mussarela', 4500),
    ('Pizzas Salgadas', 'Margherita', 'Mussarela, tomate e manjericão fresco', 4200),
    ('Pizzas Salgadas', 'Frango com Catupiry', 'Frango desfiado e catupiry original', 4800),
    ('Pizzas Salgadas', 'Portuguesa', 'Presunto, ovos, cebola, ervilha e mussarela', 4900),
    ('Pizzas Salgadas', 'Quatro Queijos', 'Mussarela, provolone, parmesão e gorgonzola', 5200),
    ('Pizzas Doces', 'Chocolate com Morango', 'Chocolate ao leite e morangos frescos', 4600),
    ('Pizzas Doces', 'Banana com Canela', 'Banana, açúcar e canela', 3900),
    ('Pizzas Doces', 'Romeu e Julieta', 'Goiabada e queijo minas', 4100),
    ('Burgers', 'Talola Burger', 'Blend 180g, cheddar, bacon e molho da casa', 3200),
    ('Burgers', 'Cheese Salada', 'Blend 150g, queijo, alface e tomate', 2600),
    ('Bebidas', 'Refrigerante Lata', '350ml', 600),
    ('Bebidas', 'Refrigerante 2L', 'Garrafa 2 litros', 1400),
    ('Bebidas', 'Suco Natural', '500ml, sabores do dia', 900),
]
