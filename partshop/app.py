"""Flask application for the parts shop.

``create_app()`` builds one ``ShopContext`` per application: the product
store, cart, catalog browser and admin share a single database and
notifier, and the ``api`` blueprint reaches them through ``get_context()``.
"""

from dataclasses import dataclass
from functools import partial
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv
from flask import Flask, current_app

from partshop import config, db
from partshop.admin import ShopAdmin
from partshop.cart import CartStore
from partshop.catalog import CatalogBrowser
from partshop.logging_config import get_logger, setup_logging
from partshop.notifications import CollectingNotifier
from partshop.product_store import ProductStore
from partshop.seed import seed_database
from partshop.storage import KeyValueStorage, SqliteStorage

__all__ = ["ShopContext", "build_context", "create_app", "get_context"]

# Load environment variables from .env file (explicitly specify path)
env_path = Path(__file__).parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

logger = get_logger("app")

EXTENSION_KEY = "partshop"


@dataclass
class ShopContext:
    """Everything the request handlers share for one application."""

    db_path: str
    storage: KeyValueStorage
    notifier: CollectingNotifier
    store: ProductStore
    cart: CartStore
    browser: CatalogBrowser
    admin: ShopAdmin


def build_context(
    db_path: str,
    page_size: int = config.PAGE_SIZE,
    debounce_delay: float = config.SEARCH_DEBOUNCE_SECONDS,
    seed: bool = False,
) -> ShopContext:
    """Create the database (if needed) and wire the stores to it."""
    db.init_db(db_path)
    if seed:
        seed_database(db_path)

    notifier = CollectingNotifier()
    storage = SqliteStorage(db_path)
    store = ProductStore(fetch_all=partial(db.fetch_all_products, db_path), notifier=notifier)
    store.refresh()

    return ShopContext(
        db_path=db_path,
        storage=storage,
        notifier=notifier,
        store=store,
        cart=CartStore(storage, notifier=notifier),
        browser=CatalogBrowser(
            store,
            notifier=notifier,
            page_size=page_size,
            debounce_delay=debounce_delay,
        ),
        admin=ShopAdmin(db_path, store=store, notifier=notifier),
    )


def create_app(app_config: Optional[Dict[str, Any]] = None) -> Flask:
    """Application factory.

    Args:
        app_config: Overrides for ``app.config`` (e.g. ``DB_PATH`` or
            ``TESTING`` in tests).
    """
    app = Flask(__name__)
    app.config.update(
        DB_PATH=config.DB_PATH,
        PAGE_SIZE=config.PAGE_SIZE,
        SEARCH_DEBOUNCE_SECONDS=config.SEARCH_DEBOUNCE_SECONDS,
        SEED_SAMPLE_DATA=False,
        LOG_TO_FILE=True,
        LOG_TO_CONSOLE=True,
    )
    if app_config:
        app.config.update(app_config)

    setup_logging(log_to_file=app.config["LOG_TO_FILE"], log_to_console=app.config["LOG_TO_CONSOLE"])

    app.extensions[EXTENSION_KEY] = build_context(
        app.config["DB_PATH"],
        page_size=app.config["PAGE_SIZE"],
        debounce_delay=app.config["SEARCH_DEBOUNCE_SECONDS"],
        seed=app.config["SEED_SAMPLE_DATA"],
    )

    from partshop.api import api
    app.register_blueprint(api)

    logger.info(f"Parts shop ready (database: {app.config['DB_PATH']})")
    return app


def get_context() -> ShopContext:
    """The ``ShopContext`` of the current application."""
    return current_app.extensions[EXTENSION_KEY]


if __name__ == "__main__":
    create_app({"SEED_SAMPLE_DATA": True}).run(
        host=config.FLASK_HOST, port=config.FLASK_PORT, debug=config.FLASK_DEBUG
    )
