from pydantic import BaseModel, EmailStr


class PartnerLoginRequest(BaseModel):
    email: EmailStr
    referral_code: str  # simple second factor


class AgentLoginRequest(BaseModel):
    email: EmailStr
    password: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
