"""
Main PKI Agent application
"""
import logging
from contextlib import asynccontextmanager
from datetime import timedelta
from typing import Optional, List, AsyncGenerator
from fastapi import FastAPI, HTTPException, status
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel
import uvicorn

from .config import get_settings
from .adapters.base_adapter import CertificateStoreFactory
from .certificate_builder import CertificateBuilder
from .certificate_tool import CertificateTool
from .chain_assembler import ChainAssembler
from .hierarchy_service import CAHierarchyService
from . import pem_codec
from ..shared.exceptions import CertificateNotFoundError, IssuerNotFoundError, PkiError
from ..shared.interfaces import ICertificateStore
from ..shared.models import (
    CertificateCreationResult,
    CertificateData,
    CertificateInfo,
    ChainConfig,
    EndEntityCertConfig,
    IntermediateCAConfig,
    OperationResult,
    RootCAConfig,
)


class CertificatePemRequest(BaseModel):
    """Request model for certificate PEM operations"""
    certificate_pem: str


class IssuanceResponse(BaseModel):
    """Response model for root, intermediate and end-entity issuance"""
    certificate_name: str
    thumbprint: str
    certificate_data: CertificateData


class OperationResponse(BaseModel):
    success: bool
    message: str
    certificate_name: Optional[str] = None


# Get settings
settings = get_settings()

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper()),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

NOT_FOUND_ERRORS = (CertificateNotFoundError, IssuerNotFoundError)


def raise_for_result(result: OperationResult):
    """Translate a failed operation result into an HTTP error"""
    if result.success:
        return
    if isinstance(result.error, NOT_FOUND_ERRORS):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=result.message)
    raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=result.message)


def issuance_response(result: CertificateCreationResult) -> IssuanceResponse:
    raise_for_result(result)
    return IssuanceResponse(
        certificate_name=result.certificate_name,
        thumbprint=result.thumbprint,
        certificate_data=result.certificate_data,
    )


class PkiAgent:
    """PKI Agent for issuing, chaining and managing certificates"""

    def __init__(self, store_backend: str = "memory", store: Optional[ICertificateStore] = None):
        self.store_backend = store_backend
        self.store = store
        self.hierarchy: Optional[CAHierarchyService] = None
        self.tool: Optional[CertificateTool] = None

        self.app = FastAPI(
            title="PKI Agent",
            description="CA hierarchy issuance and certificate chaining over a certificate store",
            version="1.0.0",
            lifespan=self.lifespan
        )

        self._setup_middleware()
        self._setup_routes()

    @asynccontextmanager
    async def lifespan(self, app: FastAPI) -> AsyncGenerator[None, None]:
        """Lifespan event handler for startup and shutdown"""
        # Startup
        await self.startup()
        yield
        # Shutdown
        await self.shutdown()

    async def startup(self):
        """Application startup handler"""
        logger.info(f"Starting PKI Agent with {self.store_backend} store...")

        current_settings = get_settings()

        if self.store is None:
            self.store = CertificateStoreFactory.create_store(
                self.store_backend,
                current_settings.store_config()
            )

        clock_skew = timedelta(seconds=current_settings.CLOCK_SKEW_SECONDS)
        builder = CertificateBuilder(
            hash_algorithm=current_settings.HASH_ALGORITHM,
            min_key_size=current_settings.MIN_KEY_SIZE,
            clock_skew=clock_skew
        )
        assembler = ChainAssembler(hash_algorithm=current_settings.HASH_ALGORITHM, clock_skew=clock_skew)

        self.hierarchy = CAHierarchyService(self.store, builder)
        self.tool = CertificateTool(
            self.store,
            assembler,
            default_validity_days=current_settings.CHAIN_VALIDITY_DAYS
        )

        logger.info("PKI Agent started successfully")

    async def shutdown(self):
        """Application shutdown handler"""
        logger.info("Shutting down PKI Agent...")
        self.hierarchy = None
        self.tool = None
        logger.info("PKI Agent shut down successfully")

    def _setup_middleware(self):
        """Setup FastAPI middleware"""
        self.app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.cors_origins_list,
            allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    def _require_tool(self) -> CertificateTool:
        if not self.tool:
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Certificate store not initialized"
            )
        return self.tool

    def _require_hierarchy(self) -> CAHierarchyService:
        if not self.hierarchy:
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Certificate store not initialized"
            )
        return self.hierarchy

    def _setup_routes(self):
        """Setup application routes"""

        @self.app.get("/health")
        async def health_check():
            """Health check endpoint"""
            return {
                "status": "healthy",
                "service": "pki-agent",
                "store": self.store_backend
            }

        @self.app.get("/connection/test")
        async def test_connection():
            """Check the certificate store is reachable"""
            connected = await self._require_tool().test_connection()
            return {"connected": connected, "store": self.store_backend}

        @self.app.get("/certificates", response_model=List[str])
        async def list_certificates():
            """List certificate names in the store"""
            try:
                return await self._require_tool().list_certificates()

            except HTTPException:
                raise
            except PkiError as e:
                logger.error(f"List certificates failed: {str(e)}")
                raise HTTPException(
                    status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                    detail=f"List certificates failed: {str(e)}"
                )

        @self.app.get("/certificates/{name}", response_model=CertificateInfo)
        async def get_certificate_info(name: str, version: Optional[str] = None):
            """Get certificate information by name"""
            try:
                return await self._require_tool().get_certificate_info(name, version)

            except HTTPException:
                raise
            except CertificateNotFoundError:
                raise HTTPException(
                    status_code=status.HTTP_404_NOT_FOUND,
                    detail="Certificate not found"
                )
            except PkiError as e:
                logger.error(f"Get certificate failed: {str(e)}")
                raise HTTPException(
                    status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                    detail=f"Get certificate failed: {str(e)}"
                )

        @self.app.get("/certificates/{name}/download", response_model=CertificateData)
        async def download_certificate(
            name: str,
            version: Optional[str] = None,
            include_private_key: bool = False
        ):
            """Download a certificate as PEM, optionally with its private key"""
            try:
                return await self._require_tool().download_certificate(name, version, include_private_key)

            except HTTPException:
                raise
            except CertificateNotFoundError:
                raise HTTPException(
                    status_code=status.HTTP_404_NOT_FOUND,
                    detail="Certificate not found"
                )
            except PkiError as e:
                logger.error(f"Download certificate failed: {str(e)}")
                raise HTTPException(
                    status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                    detail=f"Download certificate failed: {str(e)}"
                )

        @self.app.delete("/certificates/{name}", response_model=OperationResponse)
        async def delete_certificate(name: str):
            """Delete a certificate from the store"""
            logger.info(f"Deleting certificate: {name}")
            result = await self._require_tool().delete_certificate(name)
            raise_for_result(result)
            return OperationResponse(**result.model_dump())

        @self.app.post("/ca/root", response_model=IssuanceResponse)
        async def create_root_ca(config: RootCAConfig):
            """Create a self-signed root CA"""
            result = await self._require_hierarchy().create_root_ca(config)
            return issuance_response(result)

        @self.app.post("/ca/intermediate", response_model=IssuanceResponse)
        async def create_intermediate_ca(config: IntermediateCAConfig):
            """Create an intermediate CA signed by a stored CA"""
            result = await self._require_hierarchy().create_intermediate_ca(config)
            return issuance_response(result)

        @self.app.post("/certificates/end-entity", response_model=IssuanceResponse)
        async def create_end_entity_certificate(config: EndEntityCertConfig):
            """Create an end-entity certificate signed by a stored intermediate CA"""
            result = await self._require_hierarchy().create_end_entity_certificate(config)
            return issuance_response(result)

        @self.app.post("/chains", response_model=OperationResponse)
        async def process_certificate_chain(chain_config: ChainConfig):
            """Re-issue a stored certificate under a new name with its CA chain attached"""
            result = await self._require_tool().process_certificate_chain(chain_config)
            raise_for_result(result)
            return OperationResponse(**result.model_dump())

        @self.app.post("/chains/validate")
        async def validate_certificate_chain(request: CertificatePemRequest):
            """Validate a leaf-first PEM chain by validity windows and issuer links"""
            pems = pem_codec.split_pem_chain(request.certificate_pem)
            is_valid = self._require_tool().assembler.validate_pem_chain(pems) if pems else False
            return {"valid": is_valid, "certificates": len(pems)}


# Create PKI agent instance
pki_agent = PkiAgent(store_backend=settings.STORE_BACKEND)
app = pki_agent.app


def run_pki_agent(
    store_backend: Optional[str] = None,
    host: Optional[str] = None,
    port: Optional[int] = None
):
    """Run the PKI agent server"""
    global pki_agent, app

    # Use settings if parameters not provided
    store_backend = store_backend or settings.STORE_BACKEND
    host = host or settings.HOST
    port = port or settings.PORT

    pki_agent = PkiAgent(store_backend=store_backend)
    app = pki_agent.app

    uvicorn.run(
        app,
        host=host,
        port=port,
        reload=False,
        log_level=settings.LOG_LEVEL.lower()
    )


if __name__ == "__main__":
    run_pki_agent()
