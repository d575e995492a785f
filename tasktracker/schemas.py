from datetime import datetime
from typing import List, Optional, Union
from pydantic import BaseModel, EmailStr, Field, field_validator


class StatusResponse(BaseModel):
    id: int
    name: str

    class Config:
        from_attributes = True


class RoleResponse(BaseModel):
    id: int
    name: str

    class Config:
        from_attributes = True


# User related schemas
class UserCreate(BaseModel):
    username: str = Field(..., min_length=1, max_length=64)
    email: EmailStr
    password: str


class UserUpdate(BaseModel):
    email: Optional[EmailStr] = None
    new_password: Optional[str] = None
    current_password: str = Field(..., min_length=1)

    @field_validator("email", "new_password", mode="before")
    @classmethod
    def blank_as_missing(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value


class RoleUpdate(BaseModel):
    role: str = Field(..., min_length=1)


class UserResponse(BaseModel):
    id: int
    username: str
    email: str
    roles: List[RoleResponse]

    class Config:
        from_attributes = True


# Task related schemas
class TaskCreate(BaseModel):
    description: str = Field(..., min_length=1)


class TaskUpdate(BaseModel):
    status: Optional[Union[int, str]] = None
    description: Optional[str] = None


class TaskOwner(BaseModel):
    id: int
    username: str

    class Config:
        from_attributes = True


class TaskResponse(BaseModel):
    id: int
    description: str
    status: StatusResponse
    owner: TaskOwner
    created_at: datetime
    updated_at: datetime
    completed_at: Optional[datetime] = None
    deleted_at: Optional[datetime] = None
    is_deleted: bool

    class Config:
        from_attributes = True


class MessageResponse(BaseModel):
    message: str


class ErrorResponse(BaseModel):
    detail: str
    kind: str
