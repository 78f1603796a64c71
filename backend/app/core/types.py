"""Custom SQLAlchemy types and small helpers shared by the models"""
from datetime import datetime
from sqlalchemy import TypeDecorator, String, Numeric
import uuid


def generate_uuid():
    """Generate a UUID string"""
    return str(uuid.uuid4())


def current_academic_year() -> int:
    """Academic years follow the calendar year"""
    return datetime.utcnow().year


class GUID(TypeDecorator):
    """Platform-independent GUID type that stores UUIDs as VARCHAR(36)"""
    impl = String(36)
    cache_ok = True

    def load_dialect_impl(self, dialect):
        return dialect.type_descriptor(String(36))

    def process_bind_param(self, value, dialect):
        if value is not None:
            return str(value)
        return value

    def process_result_value(self, value, dialect):
        if value is not None:
            return str(value)
        return value


class Score(TypeDecorator):
    """
    Grade on the 0.00 - 5.00 scale.

    Stored as DECIMAL(4,2) so MySQL keeps two decimals, returned as float
    so averages and comparisons work without Decimal juggling.
    """
    impl = Numeric(4, 2, asdecimal=False)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return value
        return round(float(value), 2)

    def process_result_value(self, value, dialect):
        if value is None:
            return value
        return float(value)
