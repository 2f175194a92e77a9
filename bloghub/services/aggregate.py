from typing import Iterable, Optional

from bloghub.models.user import ROLE_ADMIN


def _isoformat(value):
    return value.isoformat() if value else None


def serialize_author(user):
    if user is None:
        return None
    return {"name": user.name, "email": user.email, "bio": user.bio}


def build_view(
    post,
    ratings: Iterable,
    likes: Iterable,
    caller_id: Optional[int],
    caller_role: Optional[str],
    comments_count: int = 0,
) -> dict:
    """Flatten a post and its materialized ratings/likes into the listing view.

    Admins and the post's own author always get ``is_liked_by_me = False``,
    whatever the likes table says.
    """
    ratings = list(ratings or [])
    likes = list(likes or [])

    total_rating = sum(r.rating for r in ratings)
    average_rating = total_rating / len(ratings) if ratings else 0

    is_liked_by_me = False
    if (
        isinstance(caller_id, int)
        and caller_role != ROLE_ADMIN
        and post.user_id != caller_id
    ):
        is_liked_by_me = any(like.user_id == caller_id for like in likes)

    return {
        "id": post.id,
        "title": post.title,
        "content": post.content,
        "user_id": post.user_id,
        "created_at": _isoformat(post.created_at),
        "updated_at": _isoformat(post.updated_at),
        "user": serialize_author(getattr(post, "user", None)),
        "likes_count": len(likes),
        "comments_count": comments_count,
        "ratings_count": len(ratings),
        "total_rating": total_rating,
        "average_rating": average_rating,
        "is_liked_by_me": is_liked_by_me,
    }
