from typing import Literal

from pydantic import BaseModel, Field


class CenterCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=180)


class CenterRenameRequest(BaseModel):
    name: str = Field(min_length=1, max_length=180)


class ImageUrlRequest(BaseModel):
    image_url: str = ''


class CenterDeleteRequest(BaseModel):
    detach_members: bool | None = None


class OwnCenterCreateRequest(BaseModel):
    center_name: str = Field(min_length=1, max_length=180)
    course: str
    letter: str


class ClassCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=120)
    kind: Literal['standard', 'custom'] = 'custom'


class StandardClassCreateRequest(BaseModel):
    course: str
    letter: str = Field(min_length=1, max_length=1)


class ClassRenameRequest(BaseModel):
    new_name: str = Field(min_length=1, max_length=120)


class ClassDescriptionRequest(BaseModel):
    description: str = ''


class UserRegisterRequest(BaseModel):
    name: str = Field(min_length=1, max_length=180)
    email: str = ''


class MoveToClassRequest(BaseModel):
    center_id: str
    class_name: str


class MoveToCenterRequest(BaseModel):
    access_code: str = Field(pattern=r'^\d{3}-\d{3}$')


class JoinCenterRequest(BaseModel):
    access_code: str
    class_name: str | None = None


class RoleChangeRequest(BaseModel):
    role: str = Field(min_length=1, max_length=160)


class CodePropagateRequest(BaseModel):
    new_code: str = Field(pattern=r'^\d{3}-\d{3}$')
