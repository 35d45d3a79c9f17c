import asyncio
import pytest
from datetime import datetime, timezone, timedelta
from cryptography import x509
from cryptography.hazmat.primitives import hashes
from cryptography.x509.name import _ASN1Type
from cryptography.x509.oid import NameOID
from fastapi.testclient import TestClient

from src.pki_agent import pem_codec
from src.pki_agent.adapters.memory_adapter import InMemoryCertificateStore
from src.pki_agent.certificate_builder import CertificateBuilder
from src.pki_agent.certificate_tool import CertificateTool
from src.pki_agent.chain_assembler import ChainAssembler
from src.pki_agent.hierarchy_service import CAHierarchyService
from src.pki_agent.main import PkiAgent
from src.pki_agent.records import CertificateRecord
from src.shared.models import CertificateRequest, CertificateRole


@pytest.fixture(scope="session")
def builder():
    """Shared builder; key generation is the slow part so CA material is session scoped."""
    return CertificateBuilder()


@pytest.fixture(scope="session")
def root_ca(builder):
    """(record, key pair) for a self-signed test root."""
    request = CertificateRequest(
        role=CertificateRole.ROOT,
        subject="CN=Test Root CA,O=Test Org,C=US",
        validity_days=3650,
        path_length=1,
    )
    return builder.build_self_signed(request)


@pytest.fixture(scope="session")
def intermediate_ca(builder, root_ca):
    root_record, root_keys = root_ca
    request = CertificateRequest(
        role=CertificateRole.INTERMEDIATE,
        subject="CN=Test Intermediate CA,O=Test Org,C=US",
        issuer="test-root",
        validity_days=1825,
        path_length=0,
    )
    return builder.build_signed(request, root_record, root_keys.private_key)


@pytest.fixture(scope="session")
def leaf_certificate(builder, intermediate_ca):
    intermediate_record, intermediate_keys = intermediate_ca
    request = CertificateRequest(
        role=CertificateRole.END_ENTITY,
        subject="CN=service.example.com,O=Test Org",
        issuer="test-intermediate",
        san=["service.example.com", "ops@example.com"],
        extended_key_usage=["serverAuth", "clientAuth"],
    )
    return builder.build_signed(request, intermediate_record, intermediate_keys.private_key)


@pytest.fixture(scope="session")
def printable_string_ca(builder):
    """(record, key pair) for a root created outside the agent, with a PrintableString CN."""
    key_pair = builder.generate_key_pair(2048)
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, "Foreign CA", _ASN1Type.PrintableString)])
    now = datetime.now(timezone.utc)
    certificate = x509.CertificateBuilder().subject_name(
        name
    ).issuer_name(
        name
    ).public_key(
        key_pair.public_key
    ).serial_number(
        x509.random_serial_number()
    ).not_valid_before(
        now - timedelta(days=1)
    ).not_valid_after(
        now + timedelta(days=365)
    ).add_extension(
        x509.BasicConstraints(ca=True, path_length=None), critical=True
    ).add_extension(
        x509.SubjectKeyIdentifier.from_public_key(key_pair.public_key), critical=False
    ).sign(key_pair.private_key, hashes.SHA256())
    return CertificateRecord.from_certificate(certificate), key_pair


@pytest.fixture
def store():
    return InMemoryCertificateStore()


@pytest.fixture
def import_certificate(store):
    """Import a (record, key pair) into the store as a PKCS#12 bundle."""
    def _import(name, record, key_pair=None, issuers=()):
        bundle = pem_codec.build_pkcs12_bundle(
            name,
            record.certificate,
            key_pair.private_key if key_pair else None,
            [issuer.certificate for issuer in issuers],
        )
        return asyncio.run(store.import_certificate(name, bundle))
    return _import


@pytest.fixture
def populated_store(store, import_certificate, root_ca, intermediate_ca, leaf_certificate):
    """Store holding test-root, test-intermediate and test-leaf with their keys."""
    import_certificate("test-root", *root_ca)
    import_certificate("test-intermediate", *intermediate_ca, issuers=[root_ca[0]])
    import_certificate("test-leaf", *leaf_certificate, issuers=[intermediate_ca[0], root_ca[0]])
    return store


@pytest.fixture
def hierarchy(store, builder):
    return CAHierarchyService(store, builder)


@pytest.fixture
def assembler():
    return ChainAssembler()


@pytest.fixture
def tool(store, assembler):
    return CertificateTool(store, assembler)


@pytest.fixture
def client(store):
    """HTTP client for an agent bound to the test store."""
    agent = PkiAgent(store_backend="memory", store=store)
    with TestClient(agent.app) as test_client:
        yield test_client
