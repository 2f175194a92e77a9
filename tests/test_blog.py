import pytest

from bloghub.errors import BadRequest
from bloghub.models.blog import BlogPost
from bloghub.models.comment import Comment
from bloghub.models.like import Like
from bloghub.models.rating import Rating
from bloghub.services import blogs


class TestPosts:
    def test_create_sets_owner(self, client, alice, alice_post):
        assert alice_post["user_id"] == alice["id"]
        assert alice_post["title"] == "Notes on SQLAlchemy"
        assert alice_post["created_at"]

    def test_create_requires_session(self, client):
        response = client.post("/blog", json={"title": "t", "content": "c"})
        assert response.status_code == 401

    def test_get_one_view(self, client, bob, alice_post):
        response = client.get(f"/blog/{alice_post['id']}", headers=bob["headers"])

        assert response.status_code == 200
        view = response.json()
        assert view["user"] == {"name": "Alice", "email": "alice@example.com", "bio": ""}
        assert view["likes_count"] == 0
        assert view["comments_count"] == 0
        assert view["ratings_count"] == 0
        assert view["average_rating"] == 0
        assert view["is_liked_by_me"] is False

    def test_get_missing(self, client, bob):
        response = client.get("/blog/9999", headers=bob["headers"])

        assert response.status_code == 404
        assert response.json()["detail"] == "Blog not Found"

    def test_list_with_aggregates(self, client, alice, bob, signup, alice_post):
        carol = signup("carol")
        post_id = alice_post["id"]
        client.post(f"/blog/rate/{post_id}", json={"rating": 5}, headers=bob["headers"])
        client.post(f"/blog/rate/{post_id}", json={"rating": 3}, headers=carol["headers"])
        client.post(f"/blog/like/{post_id}", headers=bob["headers"])
        client.post(f"/blog/comment/{post_id}", json={"comment": "nice"}, headers=carol["headers"])

        response = client.get("/blog", headers=bob["headers"])

        assert response.status_code == 200
        [view] = response.json()
        assert view["total_rating"] == 8
        assert view["average_rating"] == 4
        assert view["ratings_count"] == 2
        assert view["likes_count"] == 1
        assert view["comments_count"] == 1
        assert view["is_liked_by_me"] is True

        carol_view = client.get("/blog", headers=carol["headers"]).json()[0]
        assert carol_view["is_liked_by_me"] is False

    def test_list_pagination(self, client, alice):
        for i in range(3):
            client.post("/blog", json={"title": f"post {i}", "content": "c"}, headers=alice["headers"])

        first = client.get("/blog", params={"limit": 2}, headers=alice["headers"]).json()
        rest = client.get("/blog", params={"limit": 2, "offset": 2}, headers=alice["headers"]).json()

        assert len(first) == 2
        assert len(rest) == 1
        assert {v["title"] for v in first + rest} == {"post 0", "post 1", "post 2"}

    def test_search_by_title_or_author(self, client, alice, bob, alice_post):
        client.post("/blog", json={"title": "Gardening", "content": "c"}, headers=bob["headers"])

        by_title = client.get("/blog/search", params={"query": "sqlalchemy"}, headers=bob["headers"]).json()
        by_author = client.get("/blog/search", params={"query": "BOB"}, headers=bob["headers"]).json()

        assert [p["id"] for p in by_title] == [alice_post["id"]]
        assert [p["title"] for p in by_author] == ["Gardening"]

    def test_search_requires_query(self, client, bob):
        response = client.get("/blog/search", params={"query": "   "}, headers=bob["headers"])

        assert response.status_code == 400
        assert response.json()["detail"] == "Query is required"

    def test_search_wildcards_match_literally(self, client, alice, bob, alice_post):
        client.post("/blog", json={"title": "100% coverage", "content": "c"}, headers=alice["headers"])

        percent = client.get("/blog/search", params={"query": "%"}, headers=bob["headers"]).json()
        underscore = client.get("/blog/search", params={"query": "_"}, headers=bob["headers"]).json()

        assert [p["title"] for p in percent] == ["100% coverage"]
        assert underscore == []


class TestOwnership:
    def test_owner_updates(self, client, alice, alice_post):
        response = client.patch(f"/blog/{alice_post['id']}", json={"title": "Renamed"}, headers=alice["headers"])

        assert response.status_code == 200
        assert response.json()["title"] == "Renamed"
        assert response.json()["content"] == "Sessions are units of work."

    def test_other_user_cannot_update(self, client, bob, alice_post):
        response = client.patch(f"/blog/{alice_post['id']}", json={"title": "Mine now"}, headers=bob["headers"])

        assert response.status_code == 403
        assert response.json()["detail"] == "You are not the owner of the blog"

    def test_admin_updates_someone_elses_post(self, client, admin, alice_post):
        response = client.patch(f"/blog/{alice_post['id']}", json={"content": "Edited"}, headers=admin["headers"])

        assert response.status_code == 200
        assert response.json()["content"] == "Edited"

    def test_update_missing_post(self, client, alice):
        response = client.patch("/blog/9999", json={"title": "x"}, headers=alice["headers"])
        assert response.status_code == 404

    def test_other_user_cannot_delete(self, client, bob, alice_post):
        response = client.delete(f"/blog/{alice_post['id']}", headers=bob["headers"])
        assert response.status_code == 403

    def test_owner_deletes(self, client, alice, alice_post):
        response = client.delete(f"/blog/{alice_post['id']}", headers=alice["headers"])

        assert response.status_code == 200
        assert response.json()["id"] == alice_post["id"]
        assert client.get(f"/blog/{alice_post['id']}", headers=alice["headers"]).status_code == 404

    def test_admin_deletes(self, client, admin, alice_post):
        response = client.delete(f"/blog/{alice_post['id']}", headers=admin["headers"])
        assert response.status_code == 200


class TestLikes:
    def test_toggle(self, client, bob, alice_post):
        url = f"/blog/like/{alice_post['id']}"

        assert client.post(url, headers=bob["headers"]).json() == {"message": "Blog liked"}
        assert client.post(url, headers=bob["headers"]).json() == {"message": "Blog unliked"}

        view = client.get(f"/blog/{alice_post['id']}", headers=bob["headers"]).json()
        assert view["likes_count"] == 0
        assert view["is_liked_by_me"] is False

    def test_cannot_like_own_post(self, client, db, alice, alice_post):
        response = client.post(f"/blog/like/{alice_post['id']}", headers=alice["headers"])

        assert response.status_code == 403
        assert response.json()["detail"] == "You cannot like your own blog"
        assert db.query(Like).count() == 0

    def test_like_missing_post(self, client, bob):
        response = client.post("/blog/like/9999", headers=bob["headers"])
        assert response.status_code == 404


class TestComments:
    def test_comment_and_list(self, client, bob, alice_post):
        response = client.post(
            f"/blog/comment/{alice_post['id']}", json={"comment": "  Great read  "}, headers=bob["headers"]
        )

        assert response.status_code == 201
        assert response.json()["content"] == "Great read"
        assert response.json()["user_id"] == bob["id"]

        comments = client.get(f"/blog/comment/{alice_post['id']}", headers=bob["headers"]).json()
        assert len(comments) == 1
        assert comments[0]["user"]["name"] == "Bob"

    def test_empty_comment_rejected(self, client, bob, alice_post):
        response = client.post(f"/blog/comment/{alice_post['id']}", json={"comment": "   "}, headers=bob["headers"])

        assert response.status_code == 400
        assert response.json()["detail"] == "Comment is required"

    def test_cannot_comment_on_own_post(self, client, db, alice, alice_post):
        response = client.post(f"/blog/comment/{alice_post['id']}", json={"comment": "me"}, headers=alice["headers"])

        assert response.status_code == 403
        assert db.query(Comment).count() == 0

    def test_list_comments_missing_post(self, client, bob):
        assert client.get("/blog/comment/9999", headers=bob["headers"]).status_code == 404

    def test_edit_and_delete_permissions(self, client, alice, bob, admin, signup, alice_post):
        carol = signup("carol")
        comment = client.post(
            f"/blog/comment/{alice_post['id']}", json={"comment": "first"}, headers=bob["headers"]
        ).json()
        url = f"/blog/comment/{comment['id']}"

        # the post owner does not own the comment
        assert client.patch(url, json={"comment": "x"}, headers=alice["headers"]).status_code == 403
        assert client.patch(url, json={"comment": "x"}, headers=carol["headers"]).status_code == 403

        edited = client.patch(url, json={"comment": "second"}, headers=bob["headers"])
        assert edited.status_code == 200
        assert edited.json()["content"] == "second"

        assert client.patch(url, json={"comment": "moderated"}, headers=admin["headers"]).status_code == 200

        assert client.delete(url, headers=carol["headers"]).status_code == 403
        assert client.delete(url, headers=admin["headers"]).status_code == 200
        assert client.delete(url, headers=bob["headers"]).status_code == 404

    def test_edit_missing_comment(self, client, bob):
        response = client.patch("/blog/comment/9999", json={"comment": "x"}, headers=bob["headers"])

        assert response.status_code == 404
        assert response.json()["detail"] == "Comment not Found"


class TestRatings:
    def test_rating_bounds(self, client, bob, alice_post):
        url = f"/blog/rate/{alice_post['id']}"

        for bad in (0, 6, -1):
            response = client.post(url, json={"rating": bad}, headers=bob["headers"])
            assert response.status_code == 400
            assert response.json()["detail"] == "Rating must be between 1 and 5"

        assert client.post(url, json={}, headers=bob["headers"]).status_code == 400

        for good in (1, 5):
            assert client.post(url, json={"rating": good}, headers=bob["headers"]).status_code == 200

    def test_rerating_overwrites(self, client, db, bob, alice_post):
        url = f"/blog/rate/{alice_post['id']}"

        first = client.post(url, json={"rating": 2}, headers=bob["headers"]).json()
        second = client.post(url, json={"rating": 4}, headers=bob["headers"]).json()

        assert second["id"] == first["id"]
        assert second["rating"] == 4
        assert db.query(Rating).filter(Rating.user_id == bob["id"]).count() == 1

        view = client.get(f"/blog/{alice_post['id']}", headers=bob["headers"]).json()
        assert view["average_rating"] == 4
        assert view["ratings_count"] == 1

    def test_cannot_rate_own_post(self, client, db, alice, alice_post):
        response = client.post(f"/blog/rate/{alice_post['id']}", json={"rating": 5}, headers=alice["headers"])

        assert response.status_code == 403
        assert response.json()["detail"] == "You cannot rate your own blog"
        assert db.query(Rating).count() == 0

    def test_rate_missing_post(self, client, bob):
        assert client.post("/blog/rate/9999", json={"rating": 3}, headers=bob["headers"]).status_code == 404


class TestDeletedAccount:
    def test_stale_token_cannot_write(self, client, db, alice, bob, alice_post):
        assert client.delete(f"/user/{bob['id']}", headers=bob["headers"]).status_code == 200

        created = client.post("/blog", json={"title": "ghost", "content": "c"}, headers=bob["headers"])
        liked = client.post(f"/blog/like/{alice_post['id']}", headers=bob["headers"])

        assert created.status_code == 400
        assert liked.status_code == 400
        assert db.query(BlogPost).count() == 1
        assert db.query(Like).count() == 0

    def test_like_for_unknown_user_is_not_reported_as_liked(self, db, alice_post):
        with pytest.raises(BadRequest):
            blogs.toggle_like(db, alice_post["id"], 9999, "user")

        assert db.query(Like).count() == 0


@pytest.fixture
def lose_race(app, db, monkeypatch):
    """Make the next commit on ``db`` run after another session has stored ``make_row()``."""

    def _arm(make_row):
        real_commit = db.commit
        pending = [make_row]

        def commit():
            if pending:
                other = app.state.database.SessionLocal()
                try:
                    other.add(pending.pop()())
                    other.commit()
                finally:
                    other.close()
            real_commit()

        monkeypatch.setattr(db, "commit", commit)

    return _arm


class TestUniquePairRaces:
    def test_like_race_reports_liked(self, db, bob, alice_post, lose_race):
        post_id = alice_post["id"]
        lose_race(lambda: Like(user_id=bob["id"], blog_id=post_id))

        result = blogs.toggle_like(db, post_id, bob["id"], "user")

        assert result == {"message": "Blog liked"}
        assert db.query(Like).filter(Like.blog_id == post_id).count() == 1

    def test_rating_race_keeps_one_row_with_newest_value(self, db, bob, alice_post, lose_race):
        post_id = alice_post["id"]
        lose_race(lambda: Rating(user_id=bob["id"], blog_id=post_id, rating=2))

        saved = blogs.rate_blog(db, post_id, bob["id"], 5)

        assert saved.rating == 5
        rows = db.query(Rating).filter(Rating.blog_id == post_id).all()
        assert [(r.user_id, r.rating) for r in rows] == [(bob["id"], 5)]
