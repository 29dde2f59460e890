import pytest

from app.errors import ValidationError
from app.services.passwords import PasswordPolicy


def test_strong_password_passes():
    policy = PasswordPolicy()
    assert policy.violations("N3w!Password99") == []
    policy.enforce("N3w!Password99")


@pytest.mark.parametrize(
    "password, problem",
    [
        ("Sh0rt!", "at least 12 characters"),
        ("n3w!password99", "uppercase"),
        ("N3W!PASSWORD99", "lowercase"),
        ("New!Passwordxx", "digit"),
        ("N3wPassword999", "special"),
    ],
)
def test_each_rule_is_reported(password, problem):
    problems = PasswordPolicy().violations(password)
    assert len(problems) == 1
    assert problem in problems[0]


def test_enforce_raises_with_every_violation():
    with pytest.raises(ValidationError) as exc:
        PasswordPolicy().enforce("abc")
    assert exc.value.status_code == 400
    assert len(exc.value.details) == 4  # length, upper, digit, special


def test_relaxed_policy():
    policy = PasswordPolicy(min_length=6, require_upper=False, require_special=False)
    assert policy.violations("abc123") == []
    assert policy.violations("abcdef") == ["Password must contain a digit"]
