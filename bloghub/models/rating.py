from sqlalchemy import Column, Integer, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from bloghub.database import Base

MIN_RATING = 1
MAX_RATING = 5


class Rating(Base):
    __tablename__ = "blog_ratings"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    blog_id = Column(Integer, ForeignKey("blogs.id"), nullable=False, index=True)
    rating = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    user = relationship("User", back_populates="ratings")
    blog = relationship("BlogPost", back_populates="ratings")

    # One rating per user per post, updated in place on repeat
    __table_args__ = (UniqueConstraint("user_id", "blog_id", name="uq_rating_user_blog"),)
