"""Data models for the forwarder."""

from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Ordered multi-map: names keep their case, duplicates are allowed.
HeaderList = List[Tuple[str, str]]


class DomainRewritePair(BaseModel):
    """Domains swapped when headers cross the forwarder."""

    model_config = ConfigDict(frozen=True)

    upstream_domain: str = Field(..., description="Domain of the upstream service")
    proxy_domain: str = Field(..., description="Publicly visible domain of the proxy")

    @field_validator("upstream_domain", "proxy_domain")
    @classmethod
    def _not_empty(cls, value: str) -> str:
        if not value:
            raise ValueError("domain must not be empty")
        return value


class UploadedFile(BaseModel):
    """A file received in a multipart request."""

    field_name: str = Field("file", description="Form field the file arrived in")
    filename: Optional[str] = Field(None, description="Declared filename")
    content_type: Optional[str] = Field(None, description="Declared content type")
    content: bytes = Field(b"", description="File content")


class InboundRequest(BaseModel):
    """Request as received from the caller."""

    method: str = Field("GET", description="HTTP method")
    path_suffix: str = Field("", description="Path after the mount point, with query")
    headers: HeaderList = Field(default_factory=list, description="Request headers")
    upload: Optional[UploadedFile] = Field(None, description="Uploaded file, if any")


class OutboundRequest(BaseModel):
    """Request issued to the upstream."""

    method: str = Field(..., description="HTTP method")
    url: str = Field(..., description="Absolute upstream URL")
    headers: HeaderList = Field(default_factory=list, description="Allow-listed headers")
    file: Optional[UploadedFile] = Field(None, description="File re-submitted as `file`")


class UpstreamResponse(BaseModel):
    """Response captured from the upstream."""

    status_code: int = Field(..., description="HTTP status code")
    headers: HeaderList = Field(default_factory=list, description="Response headers")
    content: bytes = Field(b"", description="Fully buffered, decoded body")


class OutboundReply(BaseModel):
    """Reply relayed to the original caller."""

    status_code: int = Field(..., description="HTTP status code")
    headers: HeaderList = Field(default_factory=list, description="Translated headers")
    content: bytes = Field(b"", description="Body relayed byte-for-byte")
