import pytest

from storefront.exceptions import InvalidSignature
from storefront.utils.webhook_signature import compute_signature, sign_payload, verify_signature

SECRET = "whsec_unit"
PAYLOAD = b'{"type": "checkout.session.completed"}'
NOW = 1_700_000_000


def test_valid_signature_passes():
    verify_signature(PAYLOAD, sign_payload(PAYLOAD, SECRET, NOW), SECRET, now=NOW + 10)


def test_any_matching_v1_signature_is_accepted():
    header = f"t={NOW},v1=0000,v1={compute_signature(PAYLOAD, SECRET, NOW)},v0=legacy"
    verify_signature(PAYLOAD, header, SECRET, now=NOW)


@pytest.mark.parametrize("header", [None, "", "garbage", "t=abc,v1=00", f"t={NOW}"])
def test_missing_or_malformed_header(header):
    with pytest.raises(InvalidSignature):
        verify_signature(PAYLOAD, header, SECRET, now=NOW)


def test_tampered_payload_fails():
    header = sign_payload(PAYLOAD, SECRET, NOW)
    with pytest.raises(InvalidSignature):
        verify_signature(PAYLOAD + b" ", header, SECRET, now=NOW)


def test_wrong_secret_fails():
    with pytest.raises(InvalidSignature):
        verify_signature(PAYLOAD, sign_payload(PAYLOAD, "whsec_other", NOW), SECRET, now=NOW)


@pytest.mark.parametrize("skew", [301, -301])
def test_timestamp_outside_tolerance_fails(skew):
    header = sign_payload(PAYLOAD, SECRET, NOW)
    with pytest.raises(InvalidSignature):
        verify_signature(PAYLOAD, header, SECRET, tolerance=300, now=NOW + skew)


def test_timestamp_at_tolerance_edge_passes():
    verify_signature(PAYLOAD, sign_payload(PAYLOAD, SECRET, NOW), SECRET, tolerance=300, now=NOW + 300)
