from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from bloghub.database import Base


class BlogPost(Base):
    __tablename__ = "blogs"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False, index=True)
    content = Column(Text, nullable=False)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    user = relationship("User", back_populates="blogs")
    likes = relationship("Like", back_populates="blog", cascade="all, delete-orphan")
    comments = relationship("Comment", back_populates="blog", cascade="all, delete-orphan")
    ratings = relationship("Rating", back_populates="blog", cascade="all, delete-orphan")
