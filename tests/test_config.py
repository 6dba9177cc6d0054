import pytest

from linkcrawl.config import RunConfig, host_from_url, load_config, normalize_seed, save_config
from linkcrawl.policy import ExtractionPolicy, FollowPolicy
from linkcrawl.types import BootstrapMode


def test_defaults():
    config = RunConfig(seeds=["http://localhost:8080"])

    assert config.seeds == ["http://localhost:8080/"]
    assert config.threads == 40
    assert config.delay_ms == 0
    assert config.timeout_seconds == 30.0
    assert config.backend == "memory"
    assert config.bootstrap_mode == BootstrapMode.RESUME
    assert config.local_hosts == frozenset({"localhost"})


@pytest.mark.parametrize(
    ("flags", "mode"),
    [
        ({"reset": True}, BootstrapMode.RESET),
        ({"resume": True}, BootstrapMode.RESUME),
        ({"recheck": True}, BootstrapMode.RECHECK),
        ({"recheck": True, "no_recheck": True}, BootstrapMode.RESUME),
        ({}, BootstrapMode.RESUME),
    ],
)
def test_bootstrap_mode(flags, mode):
    assert RunConfig(seeds=["http://h"], **flags).bootstrap_mode == mode


def test_conflicting_bootstrap_flags_raise():
    with pytest.raises(ValueError, match="mutually exclusive"):
        RunConfig(seeds=["http://h"], reset=True, recheck=True)


@pytest.mark.parametrize(
    "kwargs",
    [{"threads": 0}, {"delay_ms": -1}, {"timeout_seconds": 0}, {"backend": "sqlite"}],
)
def test_invalid_values_raise(kwargs):
    with pytest.raises(ValueError):
        RunConfig(seeds=["http://h"], **kwargs)


def test_normalize_seed():
    assert normalize_seed(" http://h ") == "http://h/"
    assert normalize_seed("https://h:8443/a?b=1#frag") == "https://h:8443/a?b=1"
    with pytest.raises(ValueError):
        normalize_seed("not a url")


def test_host_from_url():
    assert host_from_url("http://WWW.Example.org:8080/x") == "www.example.org"
    assert host_from_url("/relative") == ""


def test_from_dict_validates_types():
    with pytest.raises(ValueError, match="'threads'"):
        RunConfig.from_dict({"seeds": ["http://h"], "threads": "many"})
    with pytest.raises(ValueError, match="'reset'"):
        RunConfig.from_dict({"seeds": ["http://h"], "reset": "yes"})


def test_from_dict_splits_pattern_strings():
    config = RunConfig.from_dict({"seeds": ["http://h"], "ignore_patterns": ".*\\.pdf, .*logout.*"})

    assert config.ignore_patterns == [".*\\.pdf", ".*logout.*"]


@pytest.mark.parametrize("suffix", [".json", ".yaml"])
def test_save_and_load_roundtrip(tmp_path, suffix):
    config = RunConfig(
        seeds=["http://h"],
        recheck=True,
        follow_from_local=True,
        threads=8,
        include_patterns=["/docs/.*"],
        backend="redis",
        redis_prefix="site",
    )
    path = tmp_path / f"run{suffix}"

    save_config(config, path)
    loaded = load_config(path)

    assert loaded.to_dict() == config.to_dict()


def test_load_rejects_unknown_suffix(tmp_path):
    path = tmp_path / "run.toml"
    path.write_text("", encoding="utf-8")

    with pytest.raises(ValueError, match="Unsupported config suffix"):
        load_config(path)


def test_follow_policy_include_matches_path_only():
    policy = FollowPolicy.build(local_hosts={"h"}, include_patterns=["/docs/.*"])

    assert policy.should_follow("http://h/", "http://elsewhere/docs/a")
    assert not policy.should_follow("http://h/", "http://h/blog/a")
    assert not policy.should_follow("http://h/", "http://h/x/docs/a")


def test_follow_policy_ignore_matches_full_uri():
    policy = FollowPolicy.build(local_hosts={"h"}, ignore_patterns=[r".*\.pdf"])

    assert not policy.should_follow("http://h/", "http://h/file.pdf")
    assert policy.should_follow("http://h/", "http://h/file.pdf.html")


def test_follow_policy_local_and_follow_from_local():
    strict = FollowPolicy.build(local_hosts={"h"})
    lenient = FollowPolicy.build(local_hosts={"h"}, follow_from_local=True)

    assert strict.should_follow("http://other/", "http://h/a")
    assert not strict.should_follow("http://h/", "http://other/a")
    assert lenient.should_follow("http://h/", "http://other/a")
    assert not lenient.should_follow("http://other/", "http://third/a")


def test_follow_policy_rejects_bad_pattern():
    with pytest.raises(ValueError, match="Invalid pattern"):
        FollowPolicy.build(local_hosts={"h"}, ignore_patterns=["("])


def test_extraction_policy():
    policy = ExtractionPolicy.build(local_hosts={"h"})
    disabled = ExtractionPolicy.build(local_hosts={"h"}, no_follow=True)

    assert policy.should_extract("http://h/page")
    assert not policy.should_extract("http://other/page")
    assert not disabled.should_extract("http://h/page")


def test_config_builds_policies():
    config = RunConfig(seeds=["http://h"], follow_from_local=True, no_follow=True)

    assert config.follow_policy().should_follow("http://h/", "http://other/")
    assert not config.extraction_policy().should_extract("http://h/")
