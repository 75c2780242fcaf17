from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, CheckConstraint
from sqlalchemy.sql import func
from ..core.database import Base

CRITERIA_FIELDS = (
    "criteria_1_score",
    "criteria_2_score",
    "criteria_3_score",
    "criteria_4_score",
    "criteria_5_score",
)


class Rating(Base):
    __tablename__ = "ratings"

    id = Column(Integer, primary_key=True, index=True)
    lecturer_module_id = Column(
        Integer, ForeignKey("lecturer_modules.id", ondelete="CASCADE"), nullable=False, index=True
    )
    criteria_1_score = Column(Integer, nullable=False)
    criteria_2_score = Column(Integer, nullable=False)
    criteria_3_score = Column(Integer, nullable=False)
    criteria_4_score = Column(Integer, nullable=False)
    criteria_5_score = Column(Integer, nullable=False)
    remarks = Column(Text, nullable=True)

    # Audit only, never returned to raters
    ip_address = Column(String, nullable=True)
    user_agent = Column(String, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = tuple(
        CheckConstraint(f"{field} BETWEEN 1 AND 5", name=f"valid_{field}")
        for field in CRITERIA_FIELDS
    )

    @property
    def scores(self):
        return [getattr(self, field) for field in CRITERIA_FIELDS]
