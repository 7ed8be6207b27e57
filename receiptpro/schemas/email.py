from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field


class EmailConfig(BaseModel):
    """Credentials of the transactional e-mail service, read from settings per send."""

    service_id: str = ""
    template_id: str = ""
    public_key: str = ""

    @property
    def is_complete(self) -> bool:
        return bool(self.service_id and self.template_id and self.public_key)


class EmailTemplateParams(BaseModel):
    to_email: str
    to_name: str
    from_name: str
    from_email: str
    subject: str
    message: str
    document_number: str
    document_total: str
    document_date: str
    business_name: str


class EmailSendRequest(BaseModel):
    message: Optional[str] = Field(None, description="Custom body; a default is generated when omitted")


class EmailSendResponse(BaseModel):
    sent: bool
    message: str
