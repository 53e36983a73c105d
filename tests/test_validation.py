"""
Unit tests for the input validator.

Rules are checked in order, first failure wins:
required fields -> mobile -> optional email -> location.
"""

import pytest

from app.batchverify.modules.batch_verification.errors import FailureReason
from app.batchverify.modules.batch_verification.models import VerificationRequest
from app.batchverify.modules.batch_verification.validation import validate_mobile, validate_request


def _req(**overrides) -> VerificationRequest:
    fields = {
        "full_name": "Anjali Sharma",
        "mobile": "9876543210",
        "email": "",
        "batch_code": "ADIF5HW825",
        "location": "Bengaluru, Karnataka",
    }
    fields.update(overrides)
    return VerificationRequest(**fields)


class TestValidateMobile:
    @pytest.mark.parametrize("lead", list("6789"))
    def test_accepts_ten_digits_with_valid_leading_digit(self, lead):
        assert validate_mobile(lead + "123456789")

    @pytest.mark.parametrize("lead", list("012345"))
    def test_rejects_invalid_leading_digit(self, lead):
        assert not validate_mobile(lead + "123456789")

    @pytest.mark.parametrize("length", [0, 1, 5, 9, 11, 12, 15])
    def test_rejects_other_lengths(self, length):
        assert not validate_mobile(("9" + "8" * 20)[:length])

    def test_rejects_non_digits_and_country_prefix(self):
        assert not validate_mobile("98765-4321")
        assert not validate_mobile("+919876543210")
        assert not validate_mobile("98765O3210")  # letter O

    def test_rejects_non_ascii_digits(self):
        # Devanagari digits are \d in Unicode regexes
        assert not validate_mobile("९८७६५४३२१०")

    def test_surrounding_whitespace_rejected(self):
        assert not validate_mobile(" 9876543210 ")
        assert not validate_mobile("9876543210\n")


class TestValidateRequest:
    def test_valid_request_passes(self):
        out = validate_request(_req())
        assert out.ok
        assert out.reason is None

    @pytest.mark.parametrize("field", ["full_name", "mobile", "batch_code"])
    def test_required_fields(self, field):
        assert validate_request(_req(**{field: ""})).reason is FailureReason.MISSING_FIELD
        assert validate_request(_req(**{field: "   "})).reason is FailureReason.MISSING_FIELD

    def test_invalid_mobile(self):
        assert validate_request(_req(mobile="1234567890")).reason is FailureReason.INVALID_MOBILE

    def test_email_is_optional(self):
        assert validate_request(_req(email="")).ok
        assert validate_request(_req(email="   ")).ok

    def test_email_checked_when_present(self):
        assert validate_request(_req(email="anjali@example.in")).ok
        assert validate_request(_req(email="anjali@example")).reason is FailureReason.INVALID_EMAIL
        assert validate_request(_req(email="anjali example@x.in")).reason is FailureReason.INVALID_EMAIL

    def test_location_required(self):
        assert validate_request(_req(location="")).reason is FailureReason.LOCATION_REQUIRED
        assert validate_request(_req(location="  ")).reason is FailureReason.LOCATION_REQUIRED

    def test_any_location_string_passes(self):
        assert validate_request(_req(location="12.9716,77.5946")).ok
        assert validate_request(_req(location="x")).ok

    def test_short_circuits_in_order(self):
        # Missing name wins over bad mobile, bad mobile over bad email, bad email over no location.
        assert validate_request(_req(full_name="", mobile="123", email="bad", location="")).reason is FailureReason.MISSING_FIELD
        assert validate_request(_req(mobile="123", email="bad", location="")).reason is FailureReason.INVALID_MOBILE
        assert validate_request(_req(email="bad", location="")).reason is FailureReason.INVALID_EMAIL

    def test_deterministic(self):
        req = _req(email="bad")
        assert validate_request(req) == validate_request(req)


def test_from_payload_ignores_non_string_values():
    req = VerificationRequest.from_payload({"fullName": 4.2, "mobile": True, "batchCode": None, "location": ["x"]})
    assert (req.full_name, req.mobile, req.batch_code, req.location, req.email) == ("", "", "", "", "")
    assert validate_request(req).reason is FailureReason.MISSING_FIELD


def test_from_payload_keeps_integer_digits():
    req = VerificationRequest.from_payload({"fullName": "Anjali", "mobile": 9876543210, "batchCode": "ADIF5HW825", "location": "x"})
    assert req.mobile == "9876543210"
    assert validate_request(req).ok
    short = VerificationRequest.from_payload({"fullName": "Anjali", "mobile": 98765, "batchCode": "ADIF5HW825", "location": "x"})
    assert validate_request(short).reason is FailureReason.INVALID_MOBILE


def test_from_payload_tolerates_missing_body():
    req = VerificationRequest.from_payload(None, request_id="abc")
    assert req.request_id == "abc"
    assert validate_request(req).reason is FailureReason.MISSING_FIELD
