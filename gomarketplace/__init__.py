"""
GoMarketplace Cart

- cart: cart models, storage backends and the CartStore
- db: Redis client and storage settings
- errors: cart exception hierarchy
- logging: logger configuration
"""

__version__ = "0.1.0"
