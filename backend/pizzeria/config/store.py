"""Storefront defaults shared by services and routes.

Values that operators change per deployment (support phone, fees, windows)
are read from app config in `create_app`; these are the fallbacks and the
fixed display constants.
"""

DEFAULT_OPENING_TIME = '18:00'
DEFAULT_CLOSING_TIME = '00:00'
DEFAULT_UPDATED_BY = 'System'

PREPARATION_MINUTES = 45
DELIVERY_FEE_CENTS = 500
RECONCILE_SECONDS = 30

REVIEW_COMMENT_MAX = 500

PAYMENT_METHODS = ('pix', 'card', 'cash')

# PIX merchant block embedded in generated payment payloads
PIX_MERCHANT_NAME = 'TALOLA Pizzas e Burgers'
PIX_MERCHANT_CITY = 'Rio de Janeiro'
