from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime
from sqlalchemy.sql import func
from ..core.database import Base


class LecturerModule(Base):
    __tablename__ = "lecturer_modules"

    id = Column(Integer, primary_key=True, index=True)
    lecturer_name = Column(String, nullable=False)
    module_name = Column(String, nullable=False)
    module_description = Column(Text, nullable=False)
    module_objectives = Column(Text, nullable=True)
    email = Column(String, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
