from sqlalchemy import Column, ForeignKey, String, Text

from models.base_model import BaseModel, Base


class Tweet(BaseModel, Base):
    __tablename__ = "tweets"

    content = Column(Text, nullable=False)
    owner_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
