from sqlalchemy import Column, ForeignKey, JSON, String, Text

from models.base_model import BaseModel, Base


class Playlist(BaseModel, Base):
    __tablename__ = "playlists"

    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=False)
    # ordered video ids, no duplicates
    videos = Column(JSON, nullable=False, default=list)
    owner_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
