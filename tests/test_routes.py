"""Tests for the routes module."""

from apistub.operations import OperationDescriptor
from apistub.routes import (
    DEFAULT_GROUP,
    group_key,
    group_operations,
    is_parameter_segment,
    path_segments,
)


def _op(method: str, path: str, tags: tuple[str, ...] = (), handler: str = "h") -> OperationDescriptor:
    return OperationDescriptor(
        operation_id=handler, method=method, path=path, tags=tags, handler=handler
    )


class TestSegments:
    """Test path splitting."""

    def test_leading_and_trailing_slashes_ignored(self):
        assert path_segments("/chat/completions/") == ["chat", "completions"]

    def test_root(self):
        assert path_segments("/") == []

    def test_parameter_segment(self):
        assert is_parameter_segment("{id}")
        assert not is_parameter_segment("id")
        assert not is_parameter_segment("file.{ext}")


class TestGroupKey:
    """First literal segment, then first tag, then the default group."""

    def test_literal_prefix(self):
        assert group_key(_op("get", "/chat/completions", ("other",))) == ("chat", True)

    def test_templated_prefix_uses_tag(self):
        assert group_key(_op("get", "/{org}/repos", ("repos",))) == ("repos", False)

    def test_root_without_tags(self):
        assert group_key(_op("get", "/")) == (DEFAULT_GROUP, False)


class TestGroupOperations:
    """Test partitioning and module naming."""

    def test_first_appearance_order(self):
        groups = group_operations([
            _op("get", "/users", handler="a"),
            _op("get", "/chat", handler="b"),
            _op("post", "/users", handler="c"),
        ])
        assert [g.key for g in groups] == ["users", "chat"]
        assert [op.handler for op in groups[0].operations] == ["a", "c"]

    def test_prefix_and_fallback_flags(self):
        groups = group_operations([
            _op("get", "/repos/{id}", handler="a"),
            _op("get", "/{org}/repos", ("repos",), handler="b"),
            _op("get", "/{org}", ("orgs",), handler="c"),
        ])
        repos, orgs = groups
        assert repos.prefix == "repos" and repos.fallback is True
        assert orgs.prefix is None and orgs.fallback is True

    def test_module_names_snake_case(self):
        groups = group_operations([_op("get", "/userAccounts"), _op("get", "/my-items")])
        assert [g.module for g in groups] == ["user_accounts", "my_items"]

    def test_reserved_module_names(self):
        groups = group_operations([_op("get", "/types"), _op("get", "/router")])
        assert [g.module for g in groups] == ["types_routes", "router_routes"]

    def test_module_name_collisions(self):
        groups = group_operations([_op("get", "/user-items"), _op("get", "/user_items")])
        assert [g.module for g in groups] == ["user_items", "user_items2"]

    def test_keyword_module_name(self):
        groups = group_operations([_op("get", "/import")])
        assert groups[0].module == "import_"

    def test_empty(self):
        assert group_operations([]) == []
