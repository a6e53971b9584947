from storefront.schemas.common import CamelModel


class LoginIn(CamelModel):
    email: str
    password: str


class CreateAdminIn(CamelModel):
    creator_email: str
    creator_password: str
    email: str
    password: str
    role: str = "viewer"
