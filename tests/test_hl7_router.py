"""
Tests for HL7 message router.
"""

import pytest

from hl7bridge.hl7.message_router import HL7MessageRouter, message_type_matches, wildcard_for


@pytest.fixture
def router():
    """Create HL7 message router instance."""
    return HL7MessageRouter()


def test_register_and_route_exact(router):
    router.register_handler("ADT^A01", lambda msg: "admit")

    assert router.route({"message_type": "ADT^A01"}) == "admit"


def test_route_wildcard(router):
    """Test routing with a category wildcard."""
    router.register_handler("ADT^*", lambda msg: "any adt")

    assert router.route({"message_type": "ADT^A03"}) == "any adt"


def test_exact_match_preferred_over_wildcard(router):
    router.register_handler("ORU^*", lambda msg: "wildcard")
    router.register_handler("ORU^R01", lambda msg: "exact")

    assert router.route({"message_type": "ORU^R01"}) == "exact"
    assert router.route({"message_type": "ORU^R30"}) == "wildcard"


def test_message_structure_component_ignored(router):
    """MSH-9 may carry a third component naming the message structure."""
    router.register_handler("ORU^R01", lambda msg: "exact")

    assert router.route({"message_type": "ORU^R01^ORU_R01"}) == "exact"


def test_route_unknown_type(router):
    router.register_handler("ADT^*", lambda msg: "adt")

    assert router.route({"message_type": "QRY^A19"}) is None
    assert router.route({}) is None
    assert router.supports("QRY^A19") is False
    assert router.supports("ADT^A08") is True


def test_get_supported_types(router):
    router.register_handler("ADT^*", lambda msg: None)
    router.register_handler("ORU^R01", lambda msg: None)

    assert router.get_supported_types() == ["ADT^*", "ORU^R01"]


def test_wildcard_for():
    assert wildcard_for("ORU^R01") == "ORU^*"


@pytest.mark.parametrize(
    "message_type, patterns, expected",
    [
        ("ADT^A01", ["ADT^A01"], True),
        ("ADT^A01", ["ADT^*"], True),
        ("ORU^R01^ORU_R01", ["ORU^R01"], True),
        ("ORU^R01", ["ADT^*", "ORM^O01"], False),
        ("ORU^R01", [], False),
    ],
)
def test_message_type_matches(message_type, patterns, expected):
    assert message_type_matches(message_type, patterns) is expected
