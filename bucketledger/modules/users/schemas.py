"""Users module validation schemas."""
from bucketledger.core.errors import InvalidConfiguration


class UserData:
    """User data validation schema."""

    @staticmethod
    def validate(data: dict) -> dict:
        name = str(data.get('name') or '').strip()
        if not (1 <= len(name) <= 100):
            raise InvalidConfiguration('User name must be 1-100 characters')
        return {'name': name}
