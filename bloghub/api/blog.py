from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from bloghub.database import get_db
from bloghub.dependencies import Claims, get_current_claims
from bloghub.services import blogs

router = APIRouter(prefix="/blog", tags=["blog"])


class BlogCreate(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    content: str = Field(min_length=1)


class BlogUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    content: Optional[str] = Field(default=None, min_length=1)


# comment text and rating are checked by the service so that bad values
# come back as 400 rather than a schema error
class CommentRequest(BaseModel):
    comment: Optional[str] = None


class RateRequest(BaseModel):
    rating: Optional[int] = None


@router.post("", status_code=status.HTTP_201_CREATED)
def create_blog_post(
    post: BlogCreate,
    claims: Claims = Depends(get_current_claims),
    db: Session = Depends(get_db),
):
    new_post = blogs.create_blog(db, post.title, post.content, claims.id)
    return blogs.serialize_blog(new_post)


@router.get("")
def get_blog_posts(
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    claims: Claims = Depends(get_current_claims),
    db: Session = Depends(get_db),
):
    """List posts, newest first, with like/comment/rating stats"""
    return blogs.list_blogs(db, claims.id, claims.role, limit=limit, offset=offset)


@router.get("/search")
def search_blog_posts(
    query: Optional[str] = None,
    claims: Claims = Depends(get_current_claims),
    db: Session = Depends(get_db),
):
    return [blogs.serialize_blog(p) for p in blogs.search_blogs(db, query)]


@router.get("/{blog_id}")
def get_blog_post(blog_id: int, claims: Claims = Depends(get_current_claims), db: Session = Depends(get_db)):
    return blogs.get_blog(db, blog_id, claims.id, claims.role)


@router.patch("/{blog_id}")
def update_blog_post(
    blog_id: int,
    data: BlogUpdate,
    claims: Claims = Depends(get_current_claims),
    db: Session = Depends(get_db),
):
    post = blogs.update_blog(db, blog_id, data.model_dump(exclude_unset=True), claims.id, claims.role)
    return blogs.serialize_blog(post)


@router.delete("/{blog_id}")
def delete_blog_post(blog_id: int, claims: Claims = Depends(get_current_claims), db: Session = Depends(get_db)):
    return blogs.delete_blog(db, blog_id, claims.id, claims.role)


# --- Like Endpoints ---

@router.post("/like/{blog_id}")
def toggle_like_post(blog_id: int, claims: Claims = Depends(get_current_claims), db: Session = Depends(get_db)):
    """Toggle like status for a blog post"""
    return blogs.toggle_like(db, blog_id, claims.id, claims.role)


# --- Comment Endpoints ---

@router.post("/comment/{blog_id}", status_code=status.HTTP_201_CREATED)
def create_comment(
    blog_id: int,
    data: CommentRequest,
    claims: Claims = Depends(get_current_claims),
    db: Session = Depends(get_db),
):
    comment = blogs.comment_blog(db, blog_id, claims.id, data.comment)
    return blogs.serialize_comment(comment)


@router.get("/comment/{blog_id}")
def get_post_comments(blog_id: int, claims: Claims = Depends(get_current_claims), db: Session = Depends(get_db)):
    """Get all comments for a blog post, with their authors"""
    return [blogs.serialize_comment(c, with_author=True) for c in blogs.list_comments(db, blog_id)]


@router.patch("/comment/{comment_id}")
def edit_comment(
    comment_id: int,
    data: CommentRequest,
    claims: Claims = Depends(get_current_claims),
    db: Session = Depends(get_db),
):
    comment = blogs.edit_comment(db, comment_id, claims.id, data.comment, claims.role)
    return blogs.serialize_comment(comment)


@router.delete("/comment/{comment_id}")
def delete_comment(comment_id: int, claims: Claims = Depends(get_current_claims), db: Session = Depends(get_db)):
    return blogs.delete_comment(db, comment_id, claims.id, claims.role)


# --- Rating Endpoints ---

@router.post("/rate/{blog_id}")
def rate_blog_post(
    blog_id: int,
    data: RateRequest,
    claims: Claims = Depends(get_current_claims),
    db: Session = Depends(get_db),
):
    rating = blogs.rate_blog(db, blog_id, claims.id, data.rating)
    return blogs.serialize_rating(rating)
