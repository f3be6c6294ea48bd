"""
Tests for entity transformation with includes.
"""

import pytest
from datetime import datetime
from types import SimpleNamespace

from core.pagination import Page
from core.transform import (
    Transformer,
    build_include_tree,
    transform_collection,
    transform_item,
    transform_page,
)
from transformers import PostTransformer, UserTransformer

NOW = datetime(2024, 5, 1, 12, 0, 0)


def make_user(user_id=1, posts=None, roles=None):
    return SimpleNamespace(
        id=user_id,
        name=f"User {user_id}",
        email=f"user{user_id}@example.com",
        bio=None,
        is_active=True,
        is_admin=True,
        created_at=NOW,
        updated_at=NOW,
        posts=posts or [],
        roles=roles or [],
    )


def make_post(post_id, author=None, tags=None):
    return SimpleNamespace(
        id=post_id,
        user_id=author.id if author else None,
        title=f"Post {post_id}",
        body="...",
        published=True,
        created_at=NOW,
        updated_at=NOW,
        author=author,
        tags=tags or [],
    )


class NodeTransformer(Transformer):
    available_includes = ("children", "size")
    default_includes = ("size",)

    def transform(self, node):
        return {"name": node.name}

    def include_size(self, node):
        return None

    def include_children(self, node):
        return self.collection(node.children, NodeTransformer())


class TestTransformerBase:

    def test_transform_must_be_implemented(self):
        class Incomplete(Transformer):
            available_includes = ("children",)

        with pytest.raises(TypeError):
            Incomplete()


class TestIncludeTree:

    def test_dotted_names_nest(self):
        assert build_include_tree(["posts.author", "roles", "posts.tags"]) == {
            "posts": {"author": {}, "tags": {}},
            "roles": {},
        }

    def test_empty(self):
        assert build_include_tree(None) == {}
        assert build_include_tree([]) == {}


class TestTransformItem:

    def test_without_includes(self):
        result = transform_item(make_user(), UserTransformer())

        assert result["data"]["id"] == 1
        assert result["data"]["email"] == "user1@example.com"
        assert "posts" not in result["data"]

    def test_fields_follow_the_output_model(self):
        result = transform_item(make_user(), UserTransformer())

        assert set(result["data"]) == {
            "id", "name", "email", "bio", "is_active", "created_at", "updated_at",
        }
        assert result["data"]["created_at"] == NOW

    def test_guarded_attributes_are_not_exposed(self):
        assert "is_admin" not in transform_item(make_user(), UserTransformer())["data"]

    def test_include_collection(self):
        user = make_user()
        user.posts = [make_post(1, user), make_post(2, user)]

        result = transform_item(user, UserTransformer(), ["posts"])

        assert [post["id"] for post in result["data"]["posts"]["data"]] == [1, 2]

    def test_nested_include(self):
        user = make_user()
        user.posts = [make_post(1, user)]

        result = transform_item(user, UserTransformer(), ["posts.author"])

        post = result["data"]["posts"]["data"][0]
        assert post["author"]["data"]["id"] == 1
        assert "tags" not in post

    def test_missing_item_include_is_null(self):
        result = transform_item(make_post(1), PostTransformer(), ["author"])

        assert result["data"]["author"] == {"data": None}

    def test_unknown_includes_are_ignored(self):
        result = transform_item(make_user(), UserTransformer(), ["followers", "posts.nonsense"])

        assert "followers" not in result["data"]
        assert result["data"]["posts"] == {"data": []}

    def test_none_entity(self):
        assert transform_item(None, UserTransformer()) == {"data": None}


class TestDefaultIncludes:

    def test_default_includes_always_run(self):
        leaf = SimpleNamespace(name="leaf", children=[])
        root = SimpleNamespace(name="root", children=[leaf])

        result = transform_item(root, NodeTransformer(), ["children"])

        assert result["data"]["size"] == {"data": None}
        assert result["data"]["children"]["data"] == [{"name": "leaf", "size": {"data": None}}]


class TestTransformCollections:

    def test_collection(self):
        result = transform_collection([make_user(1), make_user(2)], UserTransformer())

        assert [user["id"] for user in result["data"]] == [1, 2]

    def test_empty_collection(self):
        assert transform_collection([], UserTransformer()) == {"data": []}

    def test_page_adds_pagination_meta(self):
        page = Page(items=[make_user(3), make_user(4)], page=2, per_page=2, total=5)

        result = transform_page(page, UserTransformer())

        assert [user["id"] for user in result["data"]] == [3, 4]
        assert result["meta"]["pagination"] == {
            "current_page": 2,
            "per_page": 2,
            "total": 5,
            "count": 2,
            "total_pages": 3,
            "has_next": True,
            "has_previous": True,
        }
