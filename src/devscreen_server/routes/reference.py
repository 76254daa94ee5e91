"""Reference data endpoints — age bands, domains and the question catalog.

These endpoints serve static catalog data loaded at startup and do not
require user identification.  Useful for frontends that render the
questionnaire for a child's age.
"""

from fastapi import APIRouter, Depends, Query

from devscreen_rules.catalog import QuestionCatalog

from devscreen_server.dependencies import get_catalog

router = APIRouter(prefix="/reference", tags=["reference"])


@router.get("/age-bands")
def list_age_bands(
    catalog: QuestionCatalog = Depends(get_catalog),
) -> list[dict]:
    """Return the ordered age bands with their question counts."""
    return [
        {
            "label": band.label,
            "start_month": band.start_month,
            "end_month": band.end_month,
            "question_count": len(catalog.questions_by_band(band.label)),
        }
        for band in catalog.bands
    ]


@router.get("/categories")
def list_categories(
    catalog: QuestionCatalog = Depends(get_catalog),
) -> list[dict]:
    """Return the developmental domains."""
    return [
        {"id": category, "name": catalog.domain_name(category)}
        for category in catalog.categories
    ]


@router.get("/questions")
def list_questions(
    age_months: int = Query(..., ge=0, description="Child age in months"),
    catalog: QuestionCatalog = Depends(get_catalog),
) -> dict:
    """Return the questionnaire for a child of ``age_months``.

    Covers the child's band and the band before it.
    """
    band = catalog.assign_band(age_months)
    return {
        "age_months": age_months,
        "age_group": band.label,
        "questions": [
            q.model_dump() for q in catalog.questions_for_age(age_months)
        ],
    }
