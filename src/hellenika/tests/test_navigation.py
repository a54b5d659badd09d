"""Tests for the route table and auth guards."""
import pytest

from hellenika.navigation import AUTH_PATH, HOME_PATH, Router, command_to_path, normalize_path


@pytest.fixture
def router() -> Router:
    return Router()


@pytest.mark.parametrize(
    "path, name, params",
    [
        ("/dashboard", "dashboard", {}),
        ("/activities", "activities", {}),
        ("/activities/quiz", "activity", {"activityId": "quiz"}),
        ("/activities/quiz/homer", "activity", {"activityId": "quiz", "groupId": "homer"}),
        ("/words", "words", {}),
        ("/groups/verbs", "group", {"groupId": "verbs"}),
        ("/sessions/", "sessions", {}),
        ("settings", "settings", {}),
        ("/auth", "auth", {}),
    ],
)
def test_resolve(router: Router, path, name, params) -> None:
    match = router.resolve(path)

    assert match.name == name
    assert match.params == params


def test_root_redirects_home(router: Router) -> None:
    assert router.resolve("/").path == HOME_PATH
    assert router.resolve("").path == HOME_PATH


@pytest.mark.parametrize("path", ["/nowhere", "/activities/quiz/homer/extra", "/groups/a/b"])
def test_unknown_paths(router: Router, path) -> None:
    assert router.resolve(path) is None
    assert router.guard(path, is_authenticated=True) is None


def test_normalize_path() -> None:
    assert normalize_path("/words/?page=2") == "/words"
    assert normalize_path("groups#top") == "/groups"
    assert normalize_path(None) == "/"


def test_protected_route_sends_to_sign_in(router: Router) -> None:
    match = router.guard("/activities/quiz", is_authenticated=False)

    assert match.name == "auth"
    assert match.path == AUTH_PATH
    assert match.next_path == "/activities/quiz"


def test_root_goes_to_sign_in_then_dashboard(router: Router) -> None:
    match = router.guard("/", is_authenticated=False)

    assert match.name == "auth"
    assert match.next_path == HOME_PATH


def test_sign_in_view_is_public(router: Router) -> None:
    match = router.guard(AUTH_PATH, is_authenticated=False, next_path="/words")

    assert match.name == "auth"
    assert match.next_path == "/words"


def test_sign_in_view_drops_external_next(router: Router) -> None:
    match = router.guard(AUTH_PATH, is_authenticated=False, next_path="//evil.example")

    assert match.next_path is None


def test_signed_in_user_leaves_sign_in_view(router: Router) -> None:
    assert router.guard(AUTH_PATH, is_authenticated=True).path == HOME_PATH
    assert router.guard(AUTH_PATH, is_authenticated=True, next_path="/groups").path == "/groups"


def test_signed_in_user_reaches_protected_route(router: Router) -> None:
    match = router.guard("/groups/homer", is_authenticated=True)

    assert match.name == "group"
    assert match.params == {"groupId": "homer"}


@pytest.mark.parametrize(
    "next_path, expected",
    [
        ("/sessions", "/sessions"),
        ("/activities/typing", "/activities/typing"),
        (None, HOME_PATH),
        ("https://evil.example", HOME_PATH),
        ("//evil.example", HOME_PATH),
        ("/nowhere", HOME_PATH),
        (AUTH_PATH, HOME_PATH),
    ],
)
def test_after_sign_in(router: Router, next_path, expected) -> None:
    assert router.after_sign_in(next_path).path == expected


@pytest.mark.parametrize(
    "command, args, expected",
    [
        ("/start", [], "/"),
        ("/dashboard", [], "/dashboard"),
        ("/activities", ["quiz", "homer"], "/activities/quiz/homer"),
        ("/groups@HellenikaBot", ["verbs"], "/groups/verbs"),
        ("/Words", [], "/words"),
        ("/groups", ["a/b"], "/groups/a%2Fb"),
    ],
)
def test_command_to_path(command, args, expected) -> None:
    assert command_to_path(command, args) == expected
