"""
Shared models for certificate issuance, chaining and store operations
"""
from typing import Optional, Any, List, Literal
from datetime import datetime
from enum import Enum
from pydantic import BaseModel, ConfigDict, Field


ExtendedKeyUsageName = Literal[
    "serverAuth", "clientAuth", "codeSigning", "emailProtection", "timeStamping"
]


class CertificateRole(str, Enum):
    ROOT = "root"
    INTERMEDIATE = "intermediate"
    END_ENTITY = "end_entity"


class CertificateRequest(BaseModel):
    """Everything the builder needs to issue one certificate"""
    role: CertificateRole
    subject: str
    issuer: Optional[str] = None  # CA name in the store, absent for root
    key_size: int = 2048
    validity_days: int = Field(default=365, ge=1)
    path_length: Optional[int] = Field(default=None, ge=0)
    extended_key_usage: List[ExtendedKeyUsageName] = Field(default_factory=list)
    san: List[str] = Field(default_factory=list)


class RootCAConfig(BaseModel):
    """Root CA creation configuration"""
    name: str
    subject: str
    key_size: int = 2048
    validity_days: int = Field(default=3650, ge=1)
    path_length: Optional[int] = Field(default=1, ge=0)


class IntermediateCAConfig(BaseModel):
    """Intermediate CA creation configuration"""
    name: str
    subject: str
    issuer_ca: str  # name of the parent CA in the store
    key_size: int = 2048
    validity_days: int = Field(default=1825, ge=1)
    path_length: Optional[int] = Field(default=0, ge=0)


class EndEntityCertConfig(BaseModel):
    """End-entity certificate creation configuration"""
    name: str
    subject: str
    issuer_ca: str  # name of the intermediate CA in the store
    key_size: int = 2048
    validity_days: int = Field(default=365, ge=1)
    san: List[str] = Field(default_factory=list)
    extended_key_usage: List[ExtendedKeyUsageName] = Field(default_factory=list)


class ChainConfig(BaseModel):
    """Certificate chain configuration"""
    source_certificate_name: str
    target_certificate_name: str
    intermediate_certificates: List[str] = Field(default_factory=list)
    root_certificates: List[str] = Field(default_factory=list)
    validity_period_days: int = Field(default=365, ge=1)
    issuer_ca_name: Optional[str] = None


class CertificatePolicy(BaseModel):
    """Import policy handed to the store alongside a bundle"""
    issuer_name: str = "Self"
    subject: str = "CN=Chained Certificate"
    key_type: str = "RSA"
    key_size: int = 2048
    exportable: bool = True
    key_usage: List[str] = Field(default_factory=lambda: ["digitalSignature", "keyEncipherment"])
    validity_in_months: int = 12
    content_type: str = "application/x-pkcs12"


class CertificateData(BaseModel):
    """Certificate data in PEM format"""
    certificate: str
    private_key: Optional[str] = None
    chain: Optional[List[str]] = None


class ChainedCertificateData(CertificateData):
    """Assembled chain: joined PEM blob plus the ordered individual PEMs"""
    chain: List[str] = Field(default_factory=list)


class CertificateInfo(BaseModel):
    """Certificate information model"""
    name: str
    version: str
    thumbprint: str
    fingerprint_sha256: str
    serial_number: str
    not_before: datetime
    not_after: datetime
    subject: str
    issuer: str
    key_usage: List[str] = Field(default_factory=list)
    extended_key_usage: List[str] = Field(default_factory=list)
    san_list: List[str] = Field(default_factory=list)
    is_ca: bool = False


class OperationResult(BaseModel):
    """Outcome of a store-facing operation"""
    model_config = ConfigDict(arbitrary_types_allowed=True)

    success: bool
    message: str
    certificate_name: Optional[str] = None
    error: Optional[Exception] = Field(default=None, exclude=True)

    @property
    def error_type(self) -> Optional[str]:
        return type(self.error).__name__ if self.error is not None else None


class CertificateCreationResult(OperationResult):
    """Outcome of root, intermediate or end-entity issuance"""
    certificate_data: Optional[CertificateData] = None
    thumbprint: Optional[str] = None
    # in-process record, never serialized
    record: Optional[Any] = Field(default=None, exclude=True)
