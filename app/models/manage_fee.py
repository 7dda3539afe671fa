# app/models/manage_fee.py
from sqlalchemy import Column, Integer, String, Float
from app.database import Base


class ManageFee(Base):
    __tablename__ = "manage_fees"

    id = Column(Integer, primary_key=True, autoincrement=True)
    fee_type = Column(String(50), unique=True, nullable=False, index=True)
    amount = Column(Float, nullable=False)

    def __repr__(self):
        return f"<ManageFee {self.fee_type}={self.amount}>"
