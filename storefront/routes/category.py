from fastapi import APIRouter, Depends
from pymongo.database import Database

from .. import category_service
from ..database import database_errors, get_db, to_json
from ..schemas import CategoryRequest, Principal
from ..security import require_admin

router = APIRouter(prefix="/api/v1/category", tags=["category"])


@router.post("/create-category", status_code=201)
def create_category(
    req: CategoryRequest,
    principal: Principal = Depends(require_admin),
    db: Database = Depends(get_db),
):
    with database_errors("Error in category"):
        category = category_service.create_category(db, req.name)
    return {"success": True, "message": "New category created", "category": to_json(category)}


@router.put("/update-category/{category_id}")
def update_category(
    category_id: str,
    req: CategoryRequest,
    principal: Principal = Depends(require_admin),
    db: Database = Depends(get_db),
):
    with database_errors("Error while updating category"):
        category = category_service.update_category(db, category_id, req.name)
    return {
        "success": True,
        "message": "Category Updated Successfully",
        "category": to_json(category),
    }


@router.get("/get-category")
def list_categories(db: Database = Depends(get_db)):
    with database_errors("Error while getting all categories"):
        categories = category_service.list_categories(db)
    return {"success": True, "message": "All Categories List", "category": to_json(categories)}


@router.get("/single-category/{slug}")
def single_category(slug: str, db: Database = Depends(get_db)):
    with database_errors("Error While getting Single Category"):
        category = category_service.get_category(db, slug)
    return {
        "success": True,
        "message": "Get Single Category Successfully",
        "category": to_json(category),
    }


@router.delete("/delete-category/{category_id}")
def delete_category(
    category_id: str,
    principal: Principal = Depends(require_admin),
    db: Database = Depends(get_db),
):
    with database_errors("Error while deleting category"):
        category_service.delete_category(db, category_id)
    return {"success": True, "message": "Category Deleted Successfully"}
