from sqlalchemy import (
    BigInteger,
    Column,
    Integer,
    String,
    Float,
    DateTime,
)
from sqlalchemy.orm import declarative_base


Base = declarative_base()


def name_key(name):
    """Case-insensitive natural key for a country name."""
    return name.lower()


class Country(Base):
    __tablename__ = "countries"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False, index=True)
    # lower-cased name; the upsert conflicts on this column
    name_key = Column(String(255), nullable=False, unique=True)
    capital = Column(String(255), nullable=True)
    region = Column(String(255), nullable=True)
    population = Column(BigInteger, nullable=False)
    currency_code = Column(String(16), nullable=True)
    exchange_rate = Column(Float, nullable=True)
    estimated_gdp = Column(Float, nullable=True)
    flag_url = Column(String(1024), nullable=True)
    last_refreshed_at = Column(DateTime(timezone=True), nullable=False)

    def __repr__(self):
        return f"<Country {self.name!r}>"
