"""One password-strength policy applied by every flow that sets a credential."""
import string
from dataclasses import dataclass

from app.config import Settings, get_settings
from app.errors import ValidationError

SPECIAL_CHARACTERS = set(string.punctuation)


@dataclass(frozen=True)
class PasswordPolicy:
    min_length: int = 12
    require_upper: bool = True
    require_lower: bool = True
    require_digit: bool = True
    require_special: bool = True

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "PasswordPolicy":
        s = settings or get_settings()
        return cls(
            min_length=s.password_min_length,
            require_upper=s.password_require_upper,
            require_lower=s.password_require_lower,
            require_digit=s.password_require_digit,
            require_special=s.password_require_special,
        )

    def violations(self, password: str) -> list[str]:
        password = password or ""
        problems = []
        if len(password) < self.min_length:
            problems.append(f"Password must be at least {self.min_length} characters long")
        if self.require_upper and not any(c.isupper() for c in password):
            problems.append("Password must contain an uppercase letter")
        if self.require_lower and not any(c.islower() for c in password):
            problems.append("Password must contain a lowercase letter")
        if self.require_digit and not any(c.isdigit() for c in password):
            problems.append("Password must contain a digit")
        if self.require_special and not any(c in SPECIAL_CHARACTERS for c in password):
            problems.append("Password must contain a special character")
        return problems

    def enforce(self, password: str) -> None:
        problems = self.violations(password)
        if problems:
            raise ValidationError(problems[0], details=problems)


def get_password_policy() -> PasswordPolicy:
    return PasswordPolicy.from_settings()
