from pydantic import BaseModel, ConfigDict, field_validator
from typing import Dict, List, Optional, Literal

GenderLiteral = Literal["male", "female"]


# ── Persisted document ──

class PersonDoc(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    name: str
    gender: GenderLiteral
    birthYear: Optional[int] = None
    deathYear: Optional[int] = None
    notes: Optional[str] = None
    external: Optional[bool] = None
    email: Optional[str] = None
    phone: Optional[str] = None


class MarriageDoc(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    spouse1Id: str
    spouse2Id: str
    marriageYear: Optional[int] = None


class ChildLinkDoc(BaseModel):
    model_config = ConfigDict(extra="ignore")

    marriageId: str
    personId: str


class TreeDocument(BaseModel):
    persons: Dict[str, PersonDoc]
    marriages: Dict[str, MarriageDoc]
    children: List[ChildLinkDoc]


# ── API bodies ──

class PersonCreate(BaseModel):
    name: str
    gender: GenderLiteral
    birthYear: Optional[int] = None
    deathYear: Optional[int] = None
    notes: Optional[str] = None
    external: bool = False
    email: Optional[str] = None
    phone: Optional[str] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("name must not be empty")
        return v


class PersonUpdate(PersonCreate):
    pass


class SpouseCreate(BaseModel):
    name: str
    gender: GenderLiteral
    marriageYear: Optional[int] = None


class ChildCreate(BaseModel):
    name: str
    gender: GenderLiteral


class ParentsCreate(BaseModel):
    fatherName: str
    motherName: str


class MarriageCreate(BaseModel):
    spouse1Id: str
    spouse2Id: str
    marriageYear: Optional[int] = None


class ChildLinkCreate(BaseModel):
    marriageId: str
    personId: str


class LoginBody(BaseModel):
    password: str
