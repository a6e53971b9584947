from fastapi import APIRouter, Depends, HTTPException

from storefront.api.deps import get_admin_service
from storefront.schemas.admin_schema import CreateAdminIn, LoginIn
from storefront.services.admin_service import (
    AdminService,
    AdminServiceException,
    DuplicateAdmin,
)

router = APIRouter(prefix="/api/admin", tags=["admin"])


@router.post("/login", summary="Admin login")
def login(payload: LoginIn, svc: AdminService = Depends(get_admin_service)):
    admin = svc.authenticate_admin(payload.email, payload.password)
    if not admin:
        raise HTTPException(status_code=401, detail="Invalid email or password")
    return {"message": "Login successful", "role": admin["role"]}


@router.post("/users", status_code=201, summary="Provision view-only admin access")
def create_admin_user(
    payload: CreateAdminIn, svc: AdminService = Depends(get_admin_service)
):
    if payload.role.lower() != "viewer":
        raise HTTPException(
            status_code=400,
            detail="Only view-level access can be provisioned via this endpoint",
        )
    creator = svc.authenticate_admin(payload.creator_email, payload.creator_password)
    if not creator or creator["role"] != "superadmin":
        raise HTTPException(
            status_code=403, detail="Only superadmins can manage admin access"
        )
    try:
        admin = svc.create_admin_user(payload.email, payload.password, role="viewer")
    except DuplicateAdmin as e:
        raise HTTPException(status_code=409, detail=str(e))
    except AdminServiceException as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"message": "Admin access created", "admin": admin}
