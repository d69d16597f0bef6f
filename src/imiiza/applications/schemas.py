"""Pydantic schemas for application endpoints.

Request bodies use the camelCase field names the web client sends.
"""

from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class SubmittedDocument(_CamelModel):
    """Document uploaded by the client before submission."""
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    type: str = Field(..., min_length=1)
    url: str = Field(..., min_length=1)


class ApplicationSubmitRequest(_CamelModel):
    name: str = Field(..., min_length=1)
    email: EmailStr
    destination_id: str = Field(..., alias="destinationId", min_length=1)
    destination_name: str = Field(..., alias="destinationName", min_length=1)
    visa_type: str = Field(..., alias="visaType", min_length=1)
    documents: List[SubmittedDocument] = Field(..., min_length=1)


class OfferLetterPayload(_CamelModel):
    """Offer letter sent inline as a data URL (data:<mime>;base64,<payload>)."""
    filename: str = Field(..., min_length=1)
    data: str = Field(..., min_length=1)


class StatusUpdateRequest(_CamelModel):
    """Body of PUT /applications/{id} and POST /applications/{id}/update-status.

    ``status`` is checked against the status catalog by the workflow engine,
    so unknown values come back as 400 rather than 422.
    """
    status: str = Field(..., min_length=1)
    note: Optional[str] = None
    tentative_date: Optional[str] = Field(None, alias="tentativeDate")
    required_documents: Optional[List[str]] = Field(None, alias="requiredDocuments")
    offer_letter: Optional[OfferLetterPayload] = Field(None, alias="offerLetter")


class AcceptApplicationRequest(_CamelModel):
    application_id: UUID = Field(..., alias="applicationId")


class ApplicationEnvelope(BaseModel):
    success: bool = True
    message: str
    application: Dict[str, Any]


class ApplicationListEnvelope(BaseModel):
    success: bool = True
    message: str
    applications: List[Dict[str, Any]]
    count: int
