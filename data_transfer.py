"""
Export and import the storefront database as JSON, plus product seeding.

Usage:
    storefront seed
    storefront export data.json
    storefront import data.json --database-url postgresql://...

Tables are written and read in foreign-key order
(users, products, addresses, orders, order_items, cart_items) so an import
into an empty database never references a missing row.
"""
import argparse
import enum
import json
import sys
from datetime import datetime
from typing import Any, Dict, List

from sqlalchemy import DateTime
from sqlalchemy import inspect as sa_inspect
from sqlalchemy.orm import Session

import crud
from database import create_db_engine, create_session_factory, init_db
from logging_config import configure_logging, get_logger
from models import TABLE_ORDER
from seed import seed_products
from settings import Settings

logger = get_logger("data_transfer")


def _columns(model):
    return sa_inspect(model).column_attrs


def _dump_value(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, enum.Enum):
        return value.value
    return value


def export_data(db: Session) -> Dict[str, List[Dict[str, Any]]]:
    """Every row of every table, keyed by table name."""
    data = {}
    for model in TABLE_ORDER:
        attrs = _columns(model)
        data[model.__tablename__] = [
            {attr.key: _dump_value(getattr(row, attr.key)) for attr in attrs}
            for row in db.query(model).all()
        ]
    return data


def _load_row(model, row: Dict[str, Any]) -> Dict[str, Any]:
    values = {}
    for attr in _columns(model):
        if attr.key not in row:
            continue
        value = row[attr.key]
        if isinstance(value, str) and isinstance(attr.columns[0].type, DateTime):
            value = datetime.fromisoformat(value)
        values[attr.key] = value
    return values


def import_data(db: Session, data: Dict[str, List[Dict[str, Any]]]) -> Dict[str, int]:
    """Upsert all rows in one transaction. Returns the row count per table."""
    counts = {}
    try:
        for model in TABLE_ORDER:
            rows = data.get(model.__tablename__, [])
            for row in rows:
                crud.upsert(db, model, _load_row(model, row))
            # Parents must exist before the next table's rows reference them
            db.flush()
            counts[model.__tablename__] = len(rows)
        db.commit()
    except Exception:
        db.rollback()
        raise
    logger.info("Imported %s", ", ".join(f"{k}={v}" for k, v in counts.items()))
    return counts


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(prog="storefront", description="Storefront database tools")
    parser.add_argument("--database-url", help="Overrides DATABASE_URL")
    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("seed", help="Insert sample products into an empty catalogue")
    export_cmd = sub.add_parser("export", help="Write all tables to a JSON file")
    export_cmd.add_argument("path")
    import_cmd = sub.add_parser("import", help="Upsert all tables from a JSON file")
    import_cmd.add_argument("path")
    args = parser.parse_args(argv)

    settings = Settings.from_env()
    configure_logging(settings.log_level)
    engine = create_db_engine(args.database_url or settings.database_url)
    init_db(engine)
    session_factory = create_session_factory(engine)

    with session_factory() as db:
        if args.command == "seed":
            added = seed_products(db)
            print(f"Seeded {added} products")
        elif args.command == "export":
            data = export_data(db)
            with open(args.path, "w") as f:
                json.dump(data, f, indent=2)
            print(f"Exported {sum(len(rows) for rows in data.values())} rows to {args.path}")
        elif args.command == "import":
            with open(args.path, "r") as f:
                data = json.load(f)
            counts = import_data(db, data)
            print(f"Imported {sum(counts.values())} rows from {args.path}")
    engine.dispose()
    return 0


if __name__ == "__main__":
    sys.exit(main())
