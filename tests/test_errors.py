from issuecache.errors import (
    AuthenticationFailed,
    CacheWriteFailed,
    IssueCacheError,
    NotInitialized,
    RemoteFetchFailed,
    RemoteUpdateFailed,
    RepositoryUnresolvable,
    classify_error,
    redact,
)


def test_taxonomy_shares_base_class():
    for exc_type in (AuthenticationFailed, NotInitialized, RemoteFetchFailed):
        assert issubclass(exc_type, IssueCacheError)
    assert RemoteUpdateFailed("x", number=3).number == 3


def test_repository_unresolvable_message():
    exc = RepositoryUnresolvable(RepositoryUnresolvable.NO_REMOTE, "origin")
    assert str(exc) == "no remote: origin"
    assert str(RepositoryUnresolvable(RepositoryUnresolvable.NO_WORKSPACE)) == "no workspace"


def test_redact_tokens():
    text = "token ghp_" + "a" * 36 + " and github_pat_" + "b" * 30 + " Bearer abcdefghijklmnopqrst"
    out = redact(text)
    assert "ghp_" not in out
    assert "github_pat_" not in out
    assert out.count("<redacted>") == 3
    assert redact("") == ""


def test_redact_app_and_user_token_prefixes():
    for prefix in ("ghs_", "ghu_", "ghr_"):
        out = redact(f"token={prefix}" + "Z9" * 18 + " trailing")
        assert prefix not in out
        assert out == "token=<redacted> trailing"


def test_classify_own_errors():
    assert classify_error(AuthenticationFailed("nope")).category == "auth"
    info = classify_error(RepositoryUnresolvable(RepositoryUnresolvable.NO_REMOTE))
    assert info.category == "repository"
    assert info.details == {"reason": "no remote"}
    assert classify_error(NotInitialized("later")).category == "not_initialized"
    assert classify_error(CacheWriteFailed("disk full")).category == "cache"


def test_classify_remote_messages():
    rate = classify_error(RemoteFetchFailed("API rate limit exceeded"))
    assert rate.category == "github.rate_limit" and rate.transient
    assert classify_error(RuntimeError("abuse detection")).category == "github.abuse"
    net = classify_error(RemoteFetchFailed("read timed out"))
    assert net.category == "network" and net.transient
    generic = classify_error(ValueError("boom gho_" + "c" * 30))
    assert generic.category == "generic"
    assert "gho_" not in generic.message
    assert generic.original_type == "ValueError"
