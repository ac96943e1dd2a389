"""Pytest configuration and fixtures."""

import os

# Use test database - PostgreSQL in Docker, SQLite locally
if os.getenv("DATABASE_URL"):
    # Running in Docker - use PostgreSQL test database
    SQLALCHEMY_DATABASE_URL = os.getenv("DATABASE_URL").replace("/catalog", "/catalog_test")
else:
    # Running locally - use SQLite
    SQLALCHEMY_DATABASE_URL = "sqlite:///./test.db"
    os.environ["DATABASE_URL"] = SQLALCHEMY_DATABASE_URL

import httpx  # noqa: E402
import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402

from src.database import Base, get_db  # noqa: E402
from src.main import app  # noqa: E402
from src.models.category import Category  # noqa: E402
from src.models.enums import ProductType  # noqa: E402
from src.models.product import Product  # noqa: E402
from src.schemas.category import CategoryRecord  # noqa: E402
from src.services.category_client import CategoryClient  # noqa: E402

connect_args = {"check_same_thread": False} if "sqlite" in SQLALCHEMY_DATABASE_URL else {}
engine = create_engine(SQLALCHEMY_DATABASE_URL, connect_args=connect_args)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="session", autouse=True)
def setup_test_database():
    """Create test database schema once at the start of the test session."""
    if "postgresql" in SQLALCHEMY_DATABASE_URL:
        # For PostgreSQL, create the test database
        from sqlalchemy_utils import create_database, database_exists

        # Create test database if it doesn't exist
        if not database_exists(SQLALCHEMY_DATABASE_URL):
            create_database(SQLALCHEMY_DATABASE_URL)

    Base.metadata.create_all(bind=engine)
    yield
    # Don't drop database - just leave it for next run (each test cleans up after itself)


@pytest.fixture(scope="function", autouse=True)
def db():
    """Create a fresh database session for each test with cleanup."""
    session = TestingSessionLocal()

    yield session

    # Clean up all data after test
    session.rollback()
    session.query(Category).update({Category.parent_id: None})
    for table in reversed(Base.metadata.sorted_tables):
        session.execute(table.delete())
    session.commit()
    session.close()


@pytest.fixture(scope="function")
def override_db(db):
    """Route the app's database dependency to the test session."""

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    yield
    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
def client(override_db):
    """Create a test client with database override."""
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture(scope="function")
def api_client(override_db):
    """Category API client talking to the app in-process."""
    transport = httpx.ASGITransport(app=app)
    http_client = httpx.AsyncClient(transport=transport, base_url="http://testserver")
    return CategoryClient(http_client=http_client, base_url="http://testserver")


@pytest.fixture
def make_category(db):
    """Factory inserting a category directly through the session."""

    def _make(
        name: str,
        parent: Category | None = None,
        product_type: ProductType = ProductType.SEEDS,
        display_order: int = 0,
        active: bool = True,
        description: str | None = None,
    ) -> Category:
        category = Category(
            name=name,
            description=description,
            product_type=product_type,
            parent_id=parent.id if parent is not None else None,
            display_order=display_order,
            active=active,
        )
        db.add(category)
        db.commit()
        db.refresh(category)
        return category

    return _make


@pytest.fixture
def make_product(db):
    def _make(name: str, category: Category) -> Product:
        product = Product(name=name, category_id=category.id)
        db.add(product)
        db.commit()
        return product

    return _make


@pytest.fixture
def seeded_tree(make_category):
    """Seeds > Soybean > Early Soybean, plus Fertilizers and an inactive root."""
    seeds = make_category("Seeds", display_order=0)
    soybean = make_category("Soybean", parent=seeds, description="Soy varieties")
    early = make_category("Early Soybean", parent=soybean)
    fertilizers = make_category(
        "Fertilizers", product_type=ProductType.FERTILIZERS, display_order=1
    )
    legacy = make_category("Legacy", product_type=ProductType.OTHERS, display_order=9, active=False)
    return {
        "seeds": seeds,
        "soybean": soybean,
        "early": early,
        "fertilizers": fertilizers,
        "legacy": legacy,
    }


@pytest.fixture
def make_record():
    """Factory for in-memory category records used by the engine tests."""
    return build_record


def build_record(
    category_id: int,
    parent_id: int | None = None,
    name: str | None = None,
    product_type: ProductType = ProductType.SEEDS,
    active: bool = True,
    description: str | None = None,
) -> CategoryRecord:
    """Build an in-memory category record for engine tests."""
    return CategoryRecord(
        id=category_id,
        name=name or f"Category {category_id}",
        description=description,
        product_type=product_type,
        parent_id=parent_id,
        active=active,
    )
