from models.base_model import Base, BaseModel
from sqlalchemy import Column, String, JSON
from sqlalchemy.orm import relationship


class User(BaseModel, Base):
    __tablename__ = "users"
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    roles = Column(JSON, nullable=False, default=lambda: ["user"])

    refresh_tokens = relationship(
        "RefreshToken",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    @property
    def password(self):
        raise AttributeError("Password: Write-only field")
