from __future__ import annotations

from sqlalchemy import (
    Column,
    Date,
    Integer,
    String,
    Text,
    UniqueConstraint,
)

from sqlalchemy.orm import declarative_base


Base = declarative_base()


###############################################################################
class MeddraTerm(Base):
    __tablename__ = "MEDDRA"
    id = Column(Integer, primary_key=True)
    meddra_code = Column(String)
    meddra_term = Column(Text, nullable=False)
    meddra_tty = Column(String)


###############################################################################
class NdcCode(Base):
    __tablename__ = "NDC_CODE"
    id = Column(Integer, primary_key=True)
    ndc_code = Column(String)
    product_name = Column(Text)


###############################################################################
class ProductNdc(Base):
    __tablename__ = "PRODUCT_NDC"
    product_id = Column(Integer, primary_key=True)
    ndc_id = Column(Integer, primary_key=True)
    __table_args__ = (UniqueConstraint("product_id", "ndc_id"),)


###############################################################################
class ProductAdverseEvent(Base):
    __tablename__ = "PRODUCT_AE"
    id = Column(Integer, primary_key=True)
    product_id = Column(Integer, nullable=False, index=True)
    meddra_id = Column(Integer, nullable=False, index=True)
    label_date = Column(Date)
    warning = Column(Integer, default=0)
    blackbox = Column(Integer, default=0)
    exact_match = Column(Integer, default=0)


###############################################################################
class ProductIndication(Base):
    __tablename__ = "PRODUCT_IND"
    id = Column(Integer, primary_key=True)
    product_id = Column(Integer, nullable=False, index=True)
    meddra_id = Column(Integer, nullable=False, index=True)
    label_date = Column(Date)
    exact_match = Column(Integer, default=0)


VOCABULARY_MODELS = {
    model.__tablename__: model
    for model in (
        MeddraTerm,
        NdcCode,
        ProductNdc,
        ProductAdverseEvent,
        ProductIndication,
    )
}
