"""
Tests for store-facing certificate tool operations
"""
import asyncio
import pytest
from datetime import timedelta

from src.pki_agent.certificate_tool import CertificateTool
from src.pki_agent.records import CertificateRecord
from src.shared.exceptions import (
    CertificateNotFoundError,
    IssuerKeyUnavailableError,
    PrivateKeyUnavailableError,
    StoreOperationError,
)
from src.shared.models import CertificateData, ChainConfig


class TestDownloadAndInfo:
    """Tests for download_certificate / get_certificate_info"""

    def test_download_without_private_key(self, tool, populated_store, leaf_certificate):
        data = asyncio.run(tool.download_certificate("test-leaf"))

        assert data.certificate == leaf_certificate[0].pem
        assert data.private_key is None

    def test_download_with_private_key(self, tool, populated_store, leaf_certificate):
        data = asyncio.run(tool.download_certificate("test-leaf", include_private_key=True))

        assert data.private_key == leaf_certificate[1].private_key_pem()

    def test_download_missing_key_degrades(self, tool, import_certificate, root_ca):
        import_certificate("no-key", root_ca[0])

        data = asyncio.run(tool.download_certificate("no-key", include_private_key=True))

        assert data.certificate == root_ca[0].pem
        assert data.private_key is None

    def test_download_missing_certificate(self, tool):
        with pytest.raises(CertificateNotFoundError):
            asyncio.run(tool.download_certificate("missing"))

    def test_certificate_info(self, tool, populated_store, leaf_certificate, intermediate_ca):
        record = leaf_certificate[0]

        info = asyncio.run(tool.get_certificate_info("test-leaf"))

        assert info.name == "test-leaf"
        assert info.version == "latest"
        assert info.thumbprint == record.thumbprint
        assert info.fingerprint_sha256 == record.fingerprint_sha256
        assert info.serial_number == format(record.serial_number, "x")
        assert info.subject == "CN=service.example.com,O=Test Org"
        assert info.issuer == str(intermediate_ca[0].subject)
        assert info.key_usage == ["digitalSignature", "keyEncipherment"]
        assert info.extended_key_usage == ["serverAuth", "clientAuth"]
        assert info.san_list == ["service.example.com", "ops@example.com"]
        assert info.is_ca is False

    def test_certificate_info_for_version(self, tool, populated_store):
        version = populated_store.versions("test-root")[0]

        info = asyncio.run(tool.get_certificate_info("test-root", version))

        assert info.version == version
        assert info.is_ca is True


class TestStoreOperations:
    """Tests for list / delete / upload / test_connection"""

    def test_list_certificates(self, tool, populated_store):
        names = asyncio.run(tool.list_certificates())

        assert names == ["test-root", "test-intermediate", "test-leaf"]

    def test_delete_certificate(self, tool, populated_store):
        result = asyncio.run(tool.delete_certificate("test-leaf"))

        assert result.success
        assert "test-leaf" not in asyncio.run(tool.list_certificates())

    def test_delete_missing_certificate(self, tool):
        result = asyncio.run(tool.delete_certificate("missing"))

        assert not result.success
        assert isinstance(result.error, CertificateNotFoundError)

    def test_upload_certificate_with_chain(self, tool, store, leaf_certificate, intermediate_ca):
        record, key_pair = leaf_certificate
        data = CertificateData(
            certificate=record.pem,
            private_key=key_pair.private_key_pem(),
            chain=[record.pem, intermediate_ca[0].pem],
        )

        result = asyncio.run(tool.upload_certificate("uploaded", data))

        assert result.success
        assert result.certificate_name == "uploaded"
        downloaded = asyncio.run(tool.download_certificate("uploaded", include_private_key=True))
        assert downloaded.certificate == record.pem
        assert downloaded.private_key == key_pair.private_key_pem()

    def test_upload_from_joined_blob(self, tool, leaf_certificate, intermediate_ca):
        data = CertificateData(certificate=leaf_certificate[0].pem + intermediate_ca[0].pem)

        result = asyncio.run(tool.upload_certificate("blob", data))

        assert result.success
        info = asyncio.run(tool.get_certificate_info("blob"))
        assert info.thumbprint == leaf_certificate[0].thumbprint

    def test_upload_rejects_garbage(self, tool):
        result = asyncio.run(tool.upload_certificate("bad", CertificateData(certificate="garbage")))

        assert not result.success
        assert result.error_type == "ParseError"

    def test_connection(self, tool):
        assert asyncio.run(tool.test_connection()) is True

    def test_connection_failure(self, tool, store, monkeypatch):
        async def broken_list():
            raise StoreOperationError("Access denied")
        monkeypatch.setattr(store, "list_certificates", broken_list)

        assert asyncio.run(tool.test_connection()) is False


class TestProcessCertificateChain:
    """Tests for the download -> chain -> validate -> upload workflow"""

    def _config(self, intermediate_ca, root_ca, **overrides):
        values = dict(
            source_certificate_name="test-leaf",
            target_certificate_name="chained-leaf",
            intermediate_certificates=[intermediate_ca[0].pem],
            root_certificates=[root_ca[0].pem],
            issuer_ca_name="test-intermediate",
        )
        values.update(overrides)
        return ChainConfig(**values)

    def test_chain_uploaded_under_target(self, tool, populated_store, intermediate_ca, root_ca, leaf_certificate):
        result = asyncio.run(tool.process_certificate_chain(self._config(intermediate_ca, root_ca)))

        assert result.success, result.message
        assert result.certificate_name == "chained-leaf"

        chained = asyncio.run(tool.download_certificate("chained-leaf", include_private_key=True))
        record = CertificateRecord.from_pem(chained.certificate)
        assert str(record.subject) == "CN=chained-leaf"
        assert record.issuer == intermediate_ca[0].subject
        assert chained.private_key == leaf_certificate[1].private_key_pem()

    def test_missing_source(self, tool, intermediate_ca, root_ca):
        result = asyncio.run(tool.process_certificate_chain(self._config(intermediate_ca, root_ca)))

        assert not result.success
        assert isinstance(result.error, CertificateNotFoundError)

    def test_without_issuer_ca_name(self, tool, populated_store, intermediate_ca, root_ca):
        config = self._config(intermediate_ca, root_ca, issuer_ca_name=None)

        result = asyncio.run(tool.process_certificate_chain(config))

        assert not result.success
        assert isinstance(result.error, IssuerKeyUnavailableError)

    def test_issuer_without_key(self, tool, populated_store, import_certificate, intermediate_ca, root_ca):
        import_certificate("public-only", intermediate_ca[0])
        config = self._config(intermediate_ca, root_ca, issuer_ca_name="public-only")

        result = asyncio.run(tool.process_certificate_chain(config))

        assert not result.success
        assert isinstance(result.error, PrivateKeyUnavailableError)

    def test_broken_chain_not_uploaded(self, tool, populated_store, intermediate_ca, root_ca):
        config = self._config(intermediate_ca, root_ca, intermediate_certificates=[])

        result = asyncio.run(tool.process_certificate_chain(config))

        assert not result.success
        assert "validation failed" in result.message
        assert "chained-leaf" not in asyncio.run(tool.list_certificates())

    def test_default_validity_applies_when_unset(self, store, populated_store, intermediate_ca, root_ca):
        tool = CertificateTool(store, default_validity_days=10)

        result = asyncio.run(tool.process_certificate_chain(self._config(intermediate_ca, root_ca)))

        assert result.success, result.message
        chained = asyncio.run(tool.download_certificate("chained-leaf"))
        record = CertificateRecord.from_pem(chained.certificate)
        assert record.not_after - record.not_before == timedelta(days=10)
