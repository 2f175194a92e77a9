import logging
from typing import List, Optional

from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from bloghub.errors import BadRequest, NotFound, raise_store_error
from bloghub.models.blog import BlogPost
from bloghub.models.comment import Comment
from bloghub.models.like import Like
from bloghub.models.rating import Rating, MIN_RATING, MAX_RATING
from bloghub.models.user import User
from bloghub.services.aggregate import build_view, serialize_author
from bloghub.services.policy import Action, authorize, require_identity

logger = logging.getLogger(__name__)

BLOG_NOT_FOUND = "Blog not Found"
COMMENT_NOT_FOUND = "Comment not Found"


def _isoformat(value):
    return value.isoformat() if value else None


def serialize_blog(post: BlogPost) -> dict:
    return {
        "id": post.id,
        "title": post.title,
        "content": post.content,
        "user_id": post.user_id,
        "created_at": _isoformat(post.created_at),
        "updated_at": _isoformat(post.updated_at),
    }


def serialize_comment(comment: Comment, with_author: bool = False) -> dict:
    data = {
        "id": comment.id,
        "blog_id": comment.blog_id,
        "user_id": comment.user_id,
        "content": comment.content,
        "created_at": _isoformat(comment.created_at),
        "updated_at": _isoformat(comment.updated_at),
    }
    if with_author:
        data["user"] = serialize_author(comment.user)
    return data


def serialize_rating(rating: Rating) -> dict:
    return {
        "id": rating.id,
        "blog_id": rating.blog_id,
        "user_id": rating.user_id,
        "rating": rating.rating,
        "created_at": _isoformat(rating.created_at),
        "updated_at": _isoformat(rating.updated_at),
    }


def _commit(db: Session):
    try:
        db.commit()
    except SQLAlchemyError as e:
        raise_store_error(db, e)


def _get_blog(db: Session, blog_id: int) -> BlogPost:
    post = db.query(BlogPost).filter(BlogPost.id == blog_id).first()
    if not post:
        raise NotFound(BLOG_NOT_FOUND)
    return post


def _get_comment(db: Session, comment_id: int) -> Comment:
    comment = db.query(Comment).filter(Comment.id == comment_id).first()
    if not comment:
        raise NotFound(COMMENT_NOT_FOUND)
    return comment


def _comment_counts(db: Session, blog_ids: List[int]) -> dict:
    if not blog_ids:
        return {}
    rows = (
        db.query(Comment.blog_id, func.count(Comment.id))
        .filter(Comment.blog_id.in_(blog_ids))
        .group_by(Comment.blog_id)
        .all()
    )
    return {blog_id: count for blog_id, count in rows}


def _with_aggregates(query):
    return query.options(
        selectinload(BlogPost.user),
        selectinload(BlogPost.likes),
        selectinload(BlogPost.ratings),
    )


# --- Posts ---

def create_blog(db: Session, title: str, content: str, caller_id: Optional[int]) -> BlogPost:
    require_identity(caller_id)

    post = BlogPost(title=title, content=content, user_id=caller_id)
    db.add(post)
    _commit(db)
    db.refresh(post)

    logger.info("User %s created blog %s", caller_id, post.id)
    return post


def list_blogs(
    db: Session,
    caller_id: Optional[int],
    caller_role: Optional[str],
    limit: int = 20,
    offset: int = 0,
) -> List[dict]:
    posts = (
        _with_aggregates(db.query(BlogPost))
        .order_by(BlogPost.created_at.desc(), BlogPost.id.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )
    counts = _comment_counts(db, [p.id for p in posts])

    return [
        build_view(p, p.ratings, p.likes, caller_id, caller_role, counts.get(p.id, 0))
        for p in posts
    ]


def get_blog(db: Session, blog_id: int, caller_id: Optional[int], caller_role: Optional[str]) -> dict:
    post = _with_aggregates(db.query(BlogPost)).filter(BlogPost.id == blog_id).first()
    if not post:
        raise NotFound(BLOG_NOT_FOUND)

    counts = _comment_counts(db, [post.id])
    return build_view(post, post.ratings, post.likes, caller_id, caller_role, counts.get(post.id, 0))


def search_blogs(db: Session, query: Optional[str]) -> List[BlogPost]:
    """Case-insensitive match on the post title or the author's name."""
    if not query or not query.strip():
        raise BadRequest("Query is required")

    # % and _ in the query match literally
    escaped = query.strip().replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    pattern = f"%{escaped}%"
    return (
        db.query(BlogPost)
        .join(User, BlogPost.user_id == User.id)
        .filter(or_(BlogPost.title.ilike(pattern, escape="\\"), User.name.ilike(pattern, escape="\\")))
        .order_by(BlogPost.id)
        .all()
    )


def update_blog(
    db: Session,
    blog_id: int,
    changes: dict,
    caller_id: Optional[int],
    caller_role: Optional[str],
) -> BlogPost:
    require_identity(caller_id)
    post = _get_blog(db, blog_id)
    authorize(Action.UPDATE, post.user_id, caller_id, caller_role, "You are not the owner of the blog")

    for field in ("title", "content"):
        if changes.get(field) is not None:
            setattr(post, field, changes[field])

    _commit(db)
    db.refresh(post)
    return post


def delete_blog(db: Session, blog_id: int, caller_id: Optional[int], caller_role: Optional[str]) -> dict:
    require_identity(caller_id)
    post = _get_blog(db, blog_id)
    authorize(Action.DELETE, post.user_id, caller_id, caller_role, "You are not the owner of the blog")

    deleted = serialize_blog(post)
    db.delete(post)
    _commit(db)

    logger.info("User %s deleted blog %s", caller_id, blog_id)
    return deleted


# --- Likes ---

def toggle_like(db: Session, blog_id: int, caller_id: Optional[int], caller_role: Optional[str] = None) -> dict:
    require_identity(caller_id)
    post = _get_blog(db, blog_id)
    authorize(Action.LIKE, post.user_id, caller_id, caller_role, "You cannot like your own blog")

    def find_existing():
        return db.query(Like).filter(
            Like.user_id == caller_id,
            Like.blog_id == blog_id,
        ).first()

    existing_like = find_existing()

    if existing_like:
        db.delete(existing_like)
        _commit(db)
        return {"message": "Blog unliked"}

    db.add(Like(user_id=caller_id, blog_id=blog_id))
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        if find_existing() is None:
            raise_store_error(db, e)
        # a concurrent request inserted the same pair first
        logger.info("Like (%s, %s) already present", caller_id, blog_id)
    except SQLAlchemyError as e:
        raise_store_error(db, e)
    return {"message": "Blog liked"}


# --- Comments ---

def _require_comment_text(content: Optional[str]) -> str:
    if not content or not content.strip():
        raise BadRequest("Comment is required")
    return content.strip()


def comment_blog(db: Session, blog_id: int, caller_id: Optional[int], content: Optional[str]) -> Comment:
    require_identity(caller_id)
    content = _require_comment_text(content)
    post = _get_blog(db, blog_id)
    authorize(Action.COMMENT, post.user_id, caller_id, None, "You cannot comment on your own blog")

    comment = Comment(user_id=caller_id, blog_id=blog_id, content=content)
    db.add(comment)
    _commit(db)
    db.refresh(comment)
    return comment


def list_comments(db: Session, blog_id: int) -> List[Comment]:
    _get_blog(db, blog_id)
    return (
        db.query(Comment)
        .options(selectinload(Comment.user))
        .filter(Comment.blog_id == blog_id)
        .order_by(Comment.created_at.asc(), Comment.id.asc())
        .all()
    )


def edit_comment(
    db: Session,
    comment_id: int,
    caller_id: Optional[int],
    content: Optional[str],
    caller_role: Optional[str],
) -> Comment:
    require_identity(caller_id)
    content = _require_comment_text(content)
    comment = _get_comment(db, comment_id)
    authorize(Action.EDIT_COMMENT, comment.user_id, caller_id, caller_role, "You are not the owner of the comment")

    comment.content = content
    _commit(db)
    db.refresh(comment)
    return comment


def delete_comment(db: Session, comment_id: int, caller_id: Optional[int], caller_role: Optional[str]) -> dict:
    require_identity(caller_id)
    comment = _get_comment(db, comment_id)
    authorize(Action.DELETE_COMMENT, comment.user_id, caller_id, caller_role, "You are not the owner of the comment")

    deleted = serialize_comment(comment)
    db.delete(comment)
    _commit(db)
    return deleted


# --- Ratings ---

def rate_blog(db: Session, blog_id: int, caller_id: Optional[int], rating: Optional[int]) -> Rating:
    require_identity(caller_id)
    if rating is None or rating < MIN_RATING or rating > MAX_RATING:
        raise BadRequest(f"Rating must be between {MIN_RATING} and {MAX_RATING}")

    post = _get_blog(db, blog_id)
    authorize(Action.RATE, post.user_id, caller_id, None, "You cannot rate your own blog")

    def find_existing():
        return db.query(Rating).filter(
            Rating.user_id == caller_id,
            Rating.blog_id == blog_id,
        ).first()

    existing_rating = find_existing()
    if existing_rating:
        existing_rating.rating = rating
        _commit(db)
        db.refresh(existing_rating)
        return existing_rating

    new_rating = Rating(user_id=caller_id, blog_id=blog_id, rating=rating)
    db.add(new_rating)
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        new_rating = find_existing()
        if new_rating is None:
            raise_store_error(db, e)
        # lost the insert race; overwrite the row that won
        new_rating.rating = rating
        _commit(db)
    except SQLAlchemyError as e:
        raise_store_error(db, e)

    db.refresh(new_rating)
    return new_rating
