"""
Key/value payment configuration stored in the database.
"""
from sqlalchemy import Column, String, Text

from beatstore.models.base import Base, BaseModel


class PaymentSetting(Base, BaseModel):
    __tablename__ = "payment_settings"

    setting_key = Column(String(100), unique=True, nullable=False, index=True)
    setting_value = Column(Text, nullable=True)
