"""
Reviewer dashboard endpoints.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from cardmock.db.database import get_db
from cardmock.db import schemas
from cardmock.api.deps import get_org_context, OrgContext
from cardmock.services.approval_service import my_stage_reviews

router = APIRouter(prefix="/reviews", tags=["reviews"])


@router.get("/my-stage-reviews")
def get_my_stage_reviews(
    db: Session = Depends(get_db),
    ctx: OrgContext = Depends(get_org_context),
):
    """Projects with mockups waiting in a stage the current user reviews."""
    results = my_stage_reviews(db, ctx.organization_id, ctx.user_id)
    return {
        "projects": [
            {
                "project": schemas.Project.model_validate(entry["project"]),
                "pending_mockups": [
                    {
                        "mockup": schemas.Mockup.model_validate(mockup),
                        "stage_order": row.stage_order,
                        "stage_name": stage_name,
                        "stage_color": stage_color,
                        "stage_progress": schemas.StageProgress.model_validate(row),
                    }
                    for mockup, row, stage_name, stage_color in entry["pending"]
                ],
            }
            for entry in results
        ]
    }
