from pymongo import ReturnDocument
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from .database import USERS, create_document, now, to_object_id
from .errors import AuthError, ConflictError, NotFoundError, ValidationError
from .log import get_logger
from .schemas import (
    ForgotPasswordRequest, LoginRequest, ProfileUpdate, RegisterRequest, User,
)
from .security import create_token, hash_password, verify_password

logger = get_logger(__name__)

MIN_PASSWORD_LENGTH = 6

# Checked in this order; the first missing field is reported.
REGISTER_FIELDS = (
    ("name", "Name is required"),
    ("email", "Email is required"),
    ("password", "Password is required"),
    ("phone", "Phone no is required"),
    ("address", "Address is required"),
    ("answer", "Answer is required"),
)


def register(db: Database, req: RegisterRequest) -> dict:
    for field, message in REGISTER_FIELDS:
        if not getattr(req, field):
            raise ValidationError(message)

    if db[USERS].find_one({"email": req.email}):
        # Historically a 200 with success false.
        raise ConflictError("Already registered please login", status_code=200)

    user = User(
        name=req.name,
        email=req.email,
        password=hash_password(req.password),
        phone=req.phone,
        address=req.address,
        answer=req.answer,
    )
    try:
        doc = create_document(db, USERS, user)
    except DuplicateKeyError:
        raise ConflictError("Already registered please login", status_code=200)
    logger.info("Registered user %s", doc["_id"])
    return doc


def login(db: Database, req: LoginRequest):
    """Return ``(user, token)`` for valid credentials."""
    if not req.email or not req.password:
        raise NotFoundError("Invalid email or password")

    user = db[USERS].find_one({"email": req.email})
    if not user:
        raise NotFoundError("Email is not registered")
    if not verify_password(req.password, user.get("password", "")):
        raise AuthError("Invalid Password", status_code=200)

    return user, create_token(user["_id"])


def forgot_password(db: Database, req: ForgotPasswordRequest) -> None:
    if not req.email:
        raise ValidationError("Email is required")
    if not req.answer:
        raise ValidationError("Answer is required")
    if not req.newPassword:
        raise ValidationError("New Password is required")

    # Plaintext comparison of the security answer.
    user = db[USERS].find_one({"email": req.email, "answer": req.answer})
    if not user:
        raise NotFoundError("Wrong Email Or Answer")

    db[USERS].update_one(
        {"_id": user["_id"]},
        {"$set": {"password": hash_password(req.newPassword), "updatedAt": now()}},
    )
    logger.info("Password reset for user %s", user["_id"])


def update_profile(db: Database, user_id: str, req: ProfileUpdate) -> dict:
    oid = to_object_id(user_id)
    user = db[USERS].find_one({"_id": oid})
    if not user:
        raise NotFoundError("User not found")

    if req.password and len(req.password) < MIN_PASSWORD_LENGTH:
        raise ValidationError("Password is required and 6 character long")

    changes = {
        "name": req.name or user.get("name"),
        "password": hash_password(req.password) if req.password else user.get("password"),
        "phone": req.phone or user.get("phone"),
        "address": req.address or user.get("address"),
        "updatedAt": now(),
    }
    return db[USERS].find_one_and_update(
        {"_id": oid},
        {"$set": changes},
        return_document=ReturnDocument.AFTER,
    )
