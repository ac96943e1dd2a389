#!/usr/bin/env python3
"""Seed a demo category tree.

Creates a small agricultural category hierarchy, with one inactive branch and
a product reference, so every admin screen state can be tried out.

Usage:
    # From project root:
    python scripts/seed_demo_data.py

    # Or against another database:
    DATABASE_URL=postgresql://catalog:catalog@db:5432/catalog python scripts/seed_demo_data.py
"""

import os
import sys

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from src.database import Base
from src.models import Category, Product
from src.models.enums import ProductType

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./catalog.db")

# (name, type, parent name, display order, active)
DEMO_TREE = [
    ("Seeds", ProductType.SEEDS, None, 0, True),
    ("Soybean", ProductType.SEEDS, "Seeds", 0, True),
    ("Early Soybean", ProductType.SEEDS, "Soybean", 0, True),
    ("Corn", ProductType.SEEDS, "Seeds", 1, True),
    ("Fertilizers", ProductType.FERTILIZERS, None, 1, True),
    ("Nitrogen", ProductType.FERTILIZERS, "Fertilizers", 0, True),
    ("Foliar", ProductType.MICRONUTRIENTS, "Fertilizers", 1, True),
    ("Pesticides", ProductType.PESTICIDES, None, 2, True),
    ("Herbicides", ProductType.PESTICIDES, "Pesticides", 0, True),
    ("Legacy Blends", ProductType.OTHERS, None, 9, False),
]


def seed_demo_data():
    """Seed the database with the demo category tree."""
    engine = create_engine(DATABASE_URL)
    Base.metadata.create_all(bind=engine)
    Session = sessionmaker(bind=engine)
    session = Session()

    try:
        if session.query(Category).first() is not None:
            print("Categories already exist. Clearing and re-seeding...")
            session.query(Product).delete()
            session.query(Category).update({Category.parent_id: None})
            session.query(Category).delete()
            session.commit()

        print("Creating categories...")
        by_name: dict[str, Category] = {}
        for name, product_type, parent_name, order, active in DEMO_TREE:
            category = Category(
                name=name,
                product_type=product_type,
                parent_id=by_name[parent_name].id if parent_name else None,
                display_order=order,
                active=active,
            )
            session.add(category)
            session.flush()
            by_name[name] = category

        print("Creating products...")
        session.add(Product(name="Urea 45%", category_id=by_name["Nitrogen"].id))

        session.commit()
        print("Demo data seeded successfully!")

    except Exception as e:
        session.rollback()
        print(f"Error seeding demo data: {e}")
        raise
    finally:
        session.close()


if __name__ == "__main__":
    seed_demo_data()
