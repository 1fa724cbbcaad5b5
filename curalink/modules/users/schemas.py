import uuid
from pydantic import Field
from curalink.core.schemas import ApiModel

class PatientProfileOut(ApiModel):
    conditions: list[str] | None = None
    age: int | None = None
    gender: str | None = None
    city: str | None = None
    country: str | None = None

class ResearcherProfileOut(ApiModel):
    institution: str | None = None
    specialties: list[str] | None = None
    research_interests: list[str] | None = None
    available_for_meetings: bool = False
    orcid_id: str | None = None

class UserOut(ApiModel):
    id: uuid.UUID
    email: str
    name: str
    role: str
    avatar: str | None = None
    patient_profile: PatientProfileOut | None = None
    researcher_profile: ResearcherProfileOut | None = None

class MeOut(ApiModel):
    user: UserOut

class NudgeCreate(ApiModel):
    message: str | None = Field(default=None, max_length=1000)
