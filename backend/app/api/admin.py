import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..database import get_db
from ..schemas.payloads import user_to_public
from ..services import user_admin
from ..services.count_sync import resync_application_counts
from ..services.query_builder import ListParams
from ..utils.roles import admin_only
from .params import list_params

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["Admin"], dependencies=[Depends(admin_only)])


@router.get("/users")
def list_users(params: ListParams = Depends(list_params), db: Session = Depends(get_db)):
    return user_admin.list_users(db, params).envelope("users", user_to_public)


@router.get("/recruiters")
def list_recruiters(params: ListParams = Depends(list_params), db: Session = Depends(get_db)):
    return user_admin.list_recruiters(db, params).envelope("recruiters", user_to_public)


@router.delete("/users/{user_id}")
def delete_user(user_id: str, db: Session = Depends(get_db)):
    removed = user_admin.delete_user(db, user_id)
    return {
        "success": True,
        "message": "User deleted successfully",
        "deletedJobs": removed["jobs"],
        "deletedApplications": removed["applications"],
    }


@router.post("/resync-counts")
def resync_counts(db: Session = Depends(get_db)):
    result = resync_application_counts(db)
    return {"success": True, **result}
