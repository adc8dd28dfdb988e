from sqlalchemy import Boolean, CheckConstraint, Column, Float, ForeignKey, Integer, String, Text

from models.base_model import BaseModel, Base


class Video(BaseModel, Base):
    __tablename__ = "videos"

    video_file_url = Column(String(512), nullable=False)
    video_file_public_id = Column(String(255), nullable=False)
    thumbnail_url = Column(String(512), nullable=True)
    thumbnail_public_id = Column(String(255), nullable=True)
    title = Column(String(255), nullable=False, index=True)
    description = Column(Text, nullable=False)
    duration = Column(Float, nullable=False, default=0)  # seconds, reported by the media host
    views = Column(Integer, nullable=False, default=0)
    is_published = Column(Boolean, nullable=False, default=True)

    owner_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    __table_args__ = (
        CheckConstraint("views >= 0", name="ck_videos_views_nonnegative"),
    )
