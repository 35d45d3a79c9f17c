"""
Tests for distinguished name parsing and conversion
"""
import pytest
from cryptography import x509
from cryptography.x509.oid import NameOID, ObjectIdentifier

from src.pki_agent.distinguished_name import DistinguishedName
from src.shared.exceptions import InvalidSubjectError


class TestParse:
    """Tests for DistinguishedName.parse"""

    def test_parse_preserves_order(self):
        dn = DistinguishedName.parse("CN=Root,O=Org,C=US")

        assert dn.attributes == (("CN", "Root"), ("O", "Org"), ("C", "US"))
        assert dn.common_name == "Root"

    def test_parse_then_format_recovers_dn(self):
        text = "CN=api.example.com,OU=Platform,O=Example Corp,L=Berlin,ST=Berlin,C=DE"

        dn = DistinguishedName.parse(text)

        assert str(dn) == text
        assert DistinguishedName.parse(str(dn)) == dn

    def test_parse_tolerates_whitespace_and_lowercase_types(self):
        dn = DistinguishedName.parse(" cn = Root , o = Org ")

        assert dn.attributes == (("CN", "Root"), ("O", "Org"))

    def test_escaped_comma_stays_in_value(self):
        dn = DistinguishedName.parse("CN=Root,O=Example\\, Inc.")

        assert dn.attributes[1] == ("O", "Example, Inc.")
        assert str(dn) == "CN=Root,O=Example\\, Inc."

    def test_order_matters_for_equality(self):
        assert DistinguishedName.parse("CN=A,O=B") != DistinguishedName.parse("O=B,CN=A")

    @pytest.mark.parametrize("text", [
        "",
        "   ",
        "CN",
        "CN=Root,XX=nope",
        "CN=",
        "CN=Root,C=USA",
        "O=Org,C=US",
        "CN=Root\\",
    ])
    def test_invalid_subjects_rejected(self, text):
        with pytest.raises(InvalidSubjectError):
            DistinguishedName.parse(text)

    def test_common_name_optional_when_not_required(self):
        dn = DistinguishedName.parse("O=Org,C=US", require_common_name=False)

        assert dn.common_name is None


class TestX509Conversion:
    """Tests for conversion to and from cryptography names"""

    def test_to_x509_name_keeps_attribute_order(self):
        name = DistinguishedName.parse("CN=Root,O=Org,C=US").to_x509_name()

        oids = [attribute.oid for attribute in name]
        assert oids == [NameOID.COMMON_NAME, NameOID.ORGANIZATION_NAME, NameOID.COUNTRY_NAME]

    def test_email_attribute(self):
        dn = DistinguishedName.parse("CN=Mail,E=admin@example.com")

        name = dn.to_x509_name()

        assert name.get_attributes_for_oid(NameOID.EMAIL_ADDRESS)[0].value == "admin@example.com"
        assert DistinguishedName.from_x509_name(name) == dn

    def test_unknown_attribute_kept_as_dotted_oid(self):
        serial_oid = ObjectIdentifier("2.5.4.5")
        name = x509.Name([
            x509.NameAttribute(NameOID.COMMON_NAME, "Device"),
            x509.NameAttribute(serial_oid, "1234"),
        ])

        dn = DistinguishedName.from_x509_name(name)

        assert dn.attributes == (("CN", "Device"), ("2.5.4.5", "1234"))
        assert dn.to_x509_name() == name
