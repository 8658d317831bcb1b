from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse
from pymongo.database import Database

from .. import auth_service, order_service
from ..database import database_errors, get_db, to_json
from ..schemas import (
    ForgotPasswordRequest, LoginRequest, OrderStatusUpdate, Principal, ProfileUpdate,
    RegisterRequest,
)
from ..security import require_admin, require_sign_in

router = APIRouter(prefix="/api/v1/auth", tags=["auth"])


@router.post("/register", status_code=201)
def register(req: RegisterRequest, db: Database = Depends(get_db)):
    with database_errors("Error in registration"):
        user = auth_service.register(db, req)
    return {"success": True, "message": "User registered successfully", "user": to_json(user)}


@router.post("/login")
def login(req: LoginRequest, db: Database = Depends(get_db)):
    with database_errors("Error in login"):
        user, token = auth_service.login(db, req)
    return {
        "success": True,
        "message": "Login successfully",
        "user": to_json(user),
        "token": token,
    }


@router.post("/forgot-password")
def forgot_password(req: ForgotPasswordRequest, db: Database = Depends(get_db)):
    with database_errors("Something went wrong"):
        auth_service.forgot_password(db, req)
    return {"success": True, "message": "Password Reset Successfully"}


@router.get("/test", response_class=PlainTextResponse)
def admin_check(principal: Principal = Depends(require_admin)):
    return "Protected Routes"


@router.get("/user-auth")
def user_auth(principal: Principal = Depends(require_sign_in)):
    return {"ok": True}


@router.get("/admin-auth")
def admin_auth(principal: Principal = Depends(require_admin)):
    return {"ok": True}


@router.put("/profile")
def update_profile(
    req: ProfileUpdate,
    principal: Principal = Depends(require_sign_in),
    db: Database = Depends(get_db),
):
    with database_errors("Error while updating profile", status_code=400):
        updated = auth_service.update_profile(db, principal.id, req)
    return {
        "success": True,
        "message": "Profile Updated Successfully",
        "updatedUser": to_json(updated),
    }


@router.get("/orders")
def orders(principal: Principal = Depends(require_sign_in), db: Database = Depends(get_db)):
    with database_errors("Error while getting orders"):
        return to_json(order_service.get_orders(db, principal.id))


@router.get("/all-orders")
def all_orders(principal: Principal = Depends(require_admin), db: Database = Depends(get_db)):
    with database_errors("Error while getting orders"):
        return to_json(order_service.get_all_orders(db))


@router.put("/order-status/{order_id}")
def order_status(
    order_id: str,
    req: OrderStatusUpdate,
    principal: Principal = Depends(require_admin),
    db: Database = Depends(get_db),
):
    with database_errors("Error while updating order"):
        return to_json(order_service.update_order_status(db, order_id, req.status))
