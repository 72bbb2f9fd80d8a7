"""
Category Routes — AI-suggested category tree for test selection.
"""
from fastapi import APIRouter, Depends, HTTPException

from skillchain.dependencies import get_question_generator
from skillchain.schemas.schemas import CategoriesRequest, CategoriesResponse

router = APIRouter(prefix="/api", tags=["Categories"])


@router.post("/categories", response_model=CategoriesResponse)
async def list_categories(
    payload: CategoriesRequest,
    generator=Depends(get_question_generator),
):
    """Suggest categories for level 1 (fields), 2 (areas) or 3 (topics)."""
    if payload.level > 1 and not (payload.parent_category or "").strip():
        raise HTTPException(status_code=400, detail="parentCategory is required for levels 2 and 3")

    categories = await generator.generate_categories(payload.level, payload.parent_category)
    return CategoriesResponse(categories=categories)
