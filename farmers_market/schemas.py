"""
Request bodies.

Each model forbids unknown properties, so a payload naming a field outside an
entity's allow-list is rejected with 400 before it reaches the repository
(which enforces the same allow-list on its own).  Update models mirror the
create models with every field optional for PATCH.
"""
from pydantic import BaseModel, ConfigDict, Field, HttpUrl


class RequestModel(BaseModel):
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)


# --- Location ---

class LocationCreate(RequestModel):
    city: str = Field(min_length=1, max_length=150)


class LocationUpdate(RequestModel):
    city: str | None = Field(None, min_length=1, max_length=150)


# --- Member ---

class MemberCreate(RequestModel):
    name: str = Field(min_length=2, max_length=150)
    location: str | None = Field(None, max_length=200)
    phone: str = Field(min_length=2, max_length=50)
    email: str = Field(min_length=2, max_length=255)
    password: str = Field(min_length=2)


class MemberUpdate(RequestModel):
    name: str | None = Field(None, min_length=2, max_length=150)
    location: str | None = Field(None, max_length=200)
    phone: str | None = Field(None, min_length=2, max_length=50)
    email: str | None = Field(None, min_length=2, max_length=255)
    password: str | None = Field(None, min_length=2)


class LoginRequest(RequestModel):
    email: str
    password: str


class LoginResponse(BaseModel):
    access_token: str
    user_id: str
    name: str
    message: str


# --- Farm ---

class FarmCreate(RequestModel):
    name: str = Field(min_length=1, max_length=200)


class FarmUpdate(RequestModel):
    name: str | None = Field(None, min_length=1, max_length=200)


# --- Product ---

class ProductCreate(RequestModel):
    name: str = Field(min_length=1, max_length=200)
    price: float = Field(ge=0)
    soldout: bool = False


class ProductReplace(ProductCreate):
    # Defaults to the farm in the URL when omitted.
    producer: str | None = Field(None, max_length=32)


class ProductUpdate(RequestModel):
    name: str | None = Field(None, min_length=1, max_length=200)
    price: float | None = Field(None, ge=0)
    soldout: bool | None = None
    producer: str | None = Field(None, max_length=32)


# --- WebHook ---

class WebHookCreate(RequestModel):
    url: HttpUrl
    event: str = Field(min_length=1, max_length=100)
