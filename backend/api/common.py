"""
Helpers shared by the API routers: pagination, slugs, ownership checks
"""
import math
import re
from typing import Any, Dict, List, Tuple

from fastapi import HTTPException, status
from sqlalchemy.orm import Query

from models.user import User


def paginate(query: Query, page: int, limit: int) -> Tuple[List[Any], Dict[str, int]]:
    """Apply offset/limit to an ordered query and build the pagination block"""
    total = query.count()
    items = query.offset((page - 1) * limit).limit(limit).all()
    return items, {
        "page": page,
        "limit": limit,
        "total": total,
        "pages": math.ceil(total / limit) if limit else 0,
    }


def generate_slug_from_title(title: str) -> str:
    """
    Generate URL-friendly slug from a title

    Example: "Learning Python - Part 1" -> "learning-python-part-1"
    """
    slug = title.lower()
    slug = re.sub(r'[^\w\s-]', '', slug)
    slug = re.sub(r'[-\s]+', '-', slug)
    return slug.strip('-')


def ensure_owner_or_admin(user: User, owner_id: int, message: str):
    """403 unless `user` is an admin or owns the resource"""
    if not user.is_admin() and user.id != owner_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=message)


def not_found(resource: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"{resource} not found")
