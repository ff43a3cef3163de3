"""Order number sequence - single-writer counter row."""
from sqlalchemy import Column, String, BigInteger
from portal.database import Base


class OrderSequence(Base):
    """Counter row locked FOR UPDATE while allocating an order number."""

    __tablename__ = 'order_sequence'

    name = Column(String(32), primary_key=True)
    last_value = Column(BigInteger, nullable=False, default=0)

    def __repr__(self):
        return f"<OrderSequence(name='{self.name}', last_value={self.last_value})>"
