"""FastAPI dependencies for services and database."""

from typing import Annotated

from fastapi import Depends
from sqlalchemy.orm import Session

from src.database import get_db
from src.services.category_service import CategoryService


def get_category_service(
    db: Annotated[Session, Depends(get_db)],
) -> CategoryService:
    """Get category service with dependencies."""
    return CategoryService(db)
