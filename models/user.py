from models.base_model import Base, BaseModel
from sqlalchemy import Column, String, Text, JSON


class User(BaseModel, Base):
    __tablename__ = "users"

    SECRET_FIELDS = ("password_hash", "refresh_token")

    username = Column(String(64), nullable=False, unique=True, index=True)  # stored lower-cased
    email = Column(String(255), nullable=False, unique=True, index=True)
    full_name = Column(String(255), nullable=False, index=True)
    avatar = Column(String(512), nullable=False)
    avatar_public_id = Column(String(255), nullable=True)
    cover_image = Column(String(512), nullable=True, default="")
    cover_image_public_id = Column(String(255), nullable=True)
    # ordered video ids, most recent last; duplicates allowed
    watch_history = Column(JSON, nullable=False, default=list)
    password_hash = Column(String(255), nullable=False)
    # the single currently valid refresh token, overwritten on login/refresh
    refresh_token = Column(Text, nullable=True)
