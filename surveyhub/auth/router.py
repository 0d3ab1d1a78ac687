import structlog
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..db import get_db
from ..errors import DuplicateEmail, InvalidCredentials
from ..models.models import Admin
from ..schemas.auth import RegisterRequest, LoginRequest, AdminResponse, TokenResponse
from .security import get_password_hash, verify_password, create_access_token, get_current_admin


router = APIRouter(prefix="/auth", tags=["auth"])
logger = structlog.get_logger(__name__)


@router.post("/register", status_code=201)
def register(req: RegisterRequest, db: Session = Depends(get_db)):
    if db.query(Admin).filter(Admin.email == req.email).first():
        raise DuplicateEmail()
    admin = Admin(name=req.name, email=req.email, password_hash=get_password_hash(req.password))
    db.add(admin)
    db.commit()
    db.refresh(admin)
    logger.info("admin_registered", admin_id=str(admin.id))
    body = TokenResponse(token=create_access_token(admin.id), user=AdminResponse.model_validate(admin))
    return {"success": True, "data": body.to_wire()}


@router.post("/login")
def login(req: LoginRequest, db: Session = Depends(get_db)):
    email = req.email.strip().lower()
    admin = db.query(Admin).filter(Admin.email == email).first()
    if not admin or not verify_password(req.password, admin.password_hash):
        logger.info("login_failed", email=email)
        raise InvalidCredentials()
    body = TokenResponse(token=create_access_token(admin.id), user=AdminResponse.model_validate(admin))
    return {"success": True, "data": body.to_wire()}


@router.post("/logout")
def logout(admin: Admin = Depends(get_current_admin)):
    # Tokens are stateless; the client drops its copy
    return {"success": True, "message": "Logged out successfully"}


@router.get("/me")
def me(admin: Admin = Depends(get_current_admin)):
    return {"success": True, "data": AdminResponse.model_validate(admin).to_wire()}
