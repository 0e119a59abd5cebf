"""API v1 schemas for request/response serialization."""
from datetime import datetime, date
from typing import Dict, List, Any
from decimal import Decimal
from flask import current_app, request
from bucketledger.core.errors import InvalidConfiguration
from bucketledger.core.money import Money, quantize
from bucketledger.core.time import parse_date, parse_year_month


class APIResponse:
    """Standard API response format."""

    @staticmethod
    def success(data: Any = None, message: str = None) -> Dict:
        """Create success response."""
        response = {
            'success': True,
            'timestamp': datetime.utcnow().isoformat()
        }

        if data is not None:
            response['data'] = data

        if message:
            response['message'] = message

        return response

    @staticmethod
    def error(message: str, code: str = None, details: Any = None) -> Dict:
        """Create error response."""
        response = {
            'success': False,
            'error': {
                'message': message,
                'timestamp': datetime.utcnow().isoformat()
            }
        }

        if code:
            response['error']['code'] = code

        if details:
            response['error']['details'] = details

        return response


def jsonable(value: Any) -> Any:
    """Turn engine results (Decimals, dates, nested containers) into JSON values."""
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, dict):
        return {key: jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [jsonable(item) for item in value]
    return value


class MoneySchema:
    """Amount with currency and display string."""

    @staticmethod
    def serialize(amount) -> Dict:
        money = Money(quantize(amount), current_app.config.get('DEFAULT_CURRENCY', 'USD'))
        return {
            'amount': float(money.amount),
            'currency': money.currency,
            'formatted': money.format(),
        }


class BucketSchema:
    """Bucket serialization schema."""

    @staticmethod
    def serialize(bucket) -> Dict:
        from bucketledger.modules.budget.service import BucketService
        return BucketService.get_bucket_summary(bucket)

    @staticmethod
    def serialize_list(buckets: List) -> List[Dict]:
        return [BucketSchema.serialize(bucket) for bucket in buckets]


class RecordSchema:
    """Serialization for models exposing ``to_dict`` (users, income, expenses, templates)."""

    @staticmethod
    def serialize(record) -> Dict:
        return record.to_dict()

    @staticmethod
    def serialize_list(records: List) -> List[Dict]:
        return [record.to_dict() for record in records]


class DistributionSchema:
    """Distribution summary/status serialization schema."""

    MONEY_FIELDS = ('total_income', 'total_planned', 'total_funded', 'unallocated', 'over_planned_by')

    @staticmethod
    def serialize(result: Dict) -> Dict:
        data = {}
        for key, value in result.items():
            if key in DistributionSchema.MONEY_FIELDS:
                data[key] = MoneySchema.serialize(value)
            elif key == 'funding_ratio':
                data[key] = float(round(value, 4))
            else:
                data[key] = jsonable(value)
        return data


class RequestValidator:
    """Request data validation."""

    @staticmethod
    def json_body() -> Dict:
        data = request.get_json(silent=True)
        if not data or not isinstance(data, dict):
            raise InvalidConfiguration('No data provided')
        return data

    @staticmethod
    def date_arg(name: str):
        try:
            return parse_date(request.args.get(name))
        except ValueError as e:
            raise InvalidConfiguration(str(e))

    @staticmethod
    def year_month_arg(name: str = 'ym'):
        value = request.args.get(name)
        if not value:
            return None
        try:
            return parse_year_month(value)
        except ValueError as e:
            raise InvalidConfiguration(f'Invalid year-month: {e}')
