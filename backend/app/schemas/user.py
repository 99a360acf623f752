"""
Pydantic schemas for User entity.
"""
from pydantic import BaseModel, EmailStr, field_validator
from datetime import datetime

MIN_PASSWORD_LENGTH = 8


class UserCreate(BaseModel):
    """Schema for user signup."""
    email: EmailStr
    password: str
    
    @field_validator("password")
    @classmethod
    def validate_password(cls, v):
        if len(v) < MIN_PASSWORD_LENGTH:
            raise ValueError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
        return v


class UserResponse(BaseModel):
    """Schema for user response."""
    id: int
    email: EmailStr
    is_active: bool
    created_at: datetime
    
    class Config:
        from_attributes = True


class UserLogin(BaseModel):
    """Schema for user login."""
    email: EmailStr
    password: str


class Token(BaseModel):
    """Schema for JWT token response."""
    access_token: str
    token_type: str = "bearer"
