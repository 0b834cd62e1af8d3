"""Username and GitHub id validation."""

import pytest

from gitpoke.accounts.identifiers import GitHubUserId, Username
from gitpoke.errors import InvalidIdentifier


class TestUsername:
    @pytest.mark.parametrize("raw", ["a", "octocat", "Octo-Cat", "a1-b2-c3", "x" * 39])
    def test_valid(self, raw):
        assert Username.parse(raw).value == raw

    @pytest.mark.parametrize(
        "raw",
        [
            "", "x" * 40, "-octo", "octo-", "oc--to", "octo_cat", "octo cat", "octö", "octo.cat",
            "octocat\n", "\nocto",
        ],
    )
    def test_invalid(self, raw):
        with pytest.raises(InvalidIdentifier):
            Username.parse(raw)

    def test_invalid_identifier_is_value_error(self):
        with pytest.raises(ValueError):
            Username("-")

    def test_non_string_rejected(self):
        with pytest.raises(InvalidIdentifier):
            Username(42)  # type: ignore[arg-type]

    def test_equality_and_hash(self):
        assert Username("octocat") == Username("octocat")
        assert len({Username("octocat"), Username("octocat")}) == 1

    def test_immutable(self):
        name = Username("octocat")
        with pytest.raises(AttributeError):
            name.value = "other"  # type: ignore[misc]

    def test_str(self):
        assert str(Username("octocat")) == "octocat"


class TestGitHubUserId:
    def test_valid(self):
        assert int(GitHubUserId(583231)) == 583231

    def test_max_int64(self):
        assert GitHubUserId(2**63 - 1).value == 2**63 - 1

    @pytest.mark.parametrize("raw", [0, -1, 2**63])
    def test_out_of_range(self, raw):
        with pytest.raises(InvalidIdentifier):
            GitHubUserId(raw)

    @pytest.mark.parametrize("raw", [True, "123", 1.5])
    def test_wrong_type(self, raw):
        with pytest.raises(InvalidIdentifier):
            GitHubUserId(raw)  # type: ignore[arg-type]
