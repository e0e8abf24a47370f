import pytest

from core import registration
from core.db.settings import DEFAULT_SETTINGS
from core.errors import RegistrationError
from core.registration import email_domain_allowed, is_valid_email, is_valid_password


@pytest.mark.parametrize(
    "email,expected",
    [
        ("user@example.com", True),
        ("user_useme1223@example.com", True),
        ("User.Name+tag@example.co.uk", True),
        ("  user@example.com  ", True),  # trims spaces
        ("bademail", False),
        ("", False),
        ("user@no-tld", False),
        ("user @example.com", False),
        ("@gmail.com", False),
        ("name@mail.example-domain.co.uk", True),
        ("user..name@example.com", False),
        ("user@.example.com", False),
    ],
)
def test_is_valid_email(email: str, expected: bool):
    assert is_valid_email(email) is expected


@pytest.mark.parametrize(
    "pw,expected",
    [
        ("Passw0rd", True),
        ("abc12345", True),
        ("Abcdef12", True),       # exactly 8 chars
        ("A" * 23 + "1a", True),  # 25 chars
        ("short1", False),
        ("  Passw0rd  ", False),  # whitespace not allowed
        ("Passw0rd\n", False),
        ("lettersOnly", False),
        ("12345678", False),
        ("", False),
        ("Abcdef1!", True),
        ("pass word1", False),
        ("a" * 26 + "1", False),  # too long
    ],
)
def test_is_valid_password(pw: str, expected: bool):
    assert is_valid_password(pw) is expected


def test_password_min_length_setting_raises_the_floor():
    assert is_valid_password("abcdef123", min_length=8) is True
    assert is_valid_password("abcdef123", min_length=12) is False
    # The floor never drops below 8
    assert is_valid_password("abc1234", min_length=4) is False


def test_email_domain_allowed():
    assert email_domain_allowed("a@anything.com", []) is True
    assert email_domain_allowed("a@Example.com", ["example.com"]) is True
    assert email_domain_allowed("a@other.com", ["example.com"]) is False


def _settings(**overrides):
    settings = dict(DEFAULT_SETTINGS)
    settings.update(overrides)
    return settings


def test_register_creates_profile_for_self_service_role(monkeypatch):
    created = {}
    monkeypatch.setattr(registration, "get_user_by_email", lambda email: None)

    def fake_create(email, password, role="candidate", verified=True, **kwargs):
        created.update(email=email, role=role, verified=verified)
        return 7

    monkeypatch.setattr(registration, "create_user_with_profile", fake_create)

    user_id = registration.register(" New@Example.com ", "Passw0rd1", "recruiter", settings=_settings())
    assert user_id == 7
    assert created == {"email": "new@example.com", "role": "recruiter", "verified": True}


def test_register_leaves_account_unverified_when_verification_required(monkeypatch):
    created = {}
    monkeypatch.setattr(registration, "get_user_by_email", lambda email: None)

    def fake_create(email, password, role="candidate", verified=True, **kwargs):
        created["verified"] = verified
        return 1

    monkeypatch.setattr(registration, "create_user_with_profile", fake_create)

    registration.register("new@example.com", "Passw0rd1", "candidate", settings=_settings(require_email_verification=True))
    assert created["verified"] is False


@pytest.mark.parametrize(
    "kwargs,settings,message",
    [
        ({"role": "admin"}, {}, "Please choose candidate or recruiter."),
        ({"email": "nope"}, {}, "Please enter a valid email address."),
        ({"password": "short"}, {}, "Password must be"),
        ({}, {"allow_registrations": False}, "New registrations are currently disabled."),
        ({}, {"allowed_email_domains": ["corp.com"]}, "email domain"),
    ],
)
def test_register_rejections(monkeypatch, kwargs, settings, message):
    monkeypatch.setattr(registration, "get_user_by_email", lambda email: None)
    monkeypatch.setattr(registration, "create_user_with_profile", lambda *a, **k: pytest.fail("should not create"))

    args = {"email": "user@example.com", "password": "Passw0rd1", "role": "candidate"}
    args.update(kwargs)
    with pytest.raises(RegistrationError) as exc:
        registration.register(args["email"], args["password"], args["role"], settings=_settings(**settings))
    assert message in str(exc.value)


def test_register_rejects_duplicate_email(monkeypatch):
    monkeypatch.setattr(registration, "get_user_by_email", lambda email: {"id": 1, "email": email})
    with pytest.raises(RegistrationError, match="already exists"):
        registration.register("user@example.com", "Passw0rd1", "candidate", settings=_settings())
