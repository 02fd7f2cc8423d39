from sqlalchemy import Boolean, Column, DateTime, String
from sqlalchemy.orm import relationship

from app.platform.db.base import BaseModel


class User(BaseModel):
    __tablename__ = "users"
    email = Column(String(255), unique=True, nullable=False, index=True)
    name = Column(String(255), nullable=False)
    # NULL for accounts created through Google or Facebook
    password_hash = Column(String(255), nullable=True)
    avatar_url = Column(String(500), nullable=True)
    auth_provider = Column(String(20), nullable=False, default="email", server_default="email")
    is_admin = Column(Boolean, nullable=False, default=False, server_default="0")

    last_login = Column(DateTime(timezone=True), nullable=True)

    oauth_accounts = relationship("OAuthAccount", back_populates="user", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<User(id={self.id}, email={self.email}, auth_provider={self.auth_provider})>"
