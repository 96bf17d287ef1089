from __future__ import annotations

import asyncio
import gc
import json
from datetime import UTC, datetime
from pathlib import Path

import pytest

from launchpad.core.project import DEFAULT_DESCRIPTION, Project, extract_video_id
from launchpad.errors import (
    EnvConfigError,
    InstallError,
    InvalidStatus,
    PortUnavailableError,
    ReadinessTimeout,
    ServerRunningError,
    VideoIdError,
)
from launchpad.models.project import ProjectStatus
from tests.support.fakes import (
    VIDEO_URL,
    FakeFetcher,
    FakeInstaller,
    FakePopen,
    FakeProber,
    make_factory,
    make_services,
    make_settings,
)


def _patch_popen(monkeypatch: pytest.MonkeyPatch, spawned: list[FakePopen]) -> None:
    def fake_popen(command: list[str], *, cwd: Path, env: dict[str, str]) -> FakePopen:
        process = FakePopen(command, cwd=cwd, env=env)
        spawned.append(process)
        return process

    monkeypatch.setattr("launchpad.core.supervisor.subprocess.Popen", fake_popen)


def test_construction_defaults(tmp_path: Path) -> None:
    factory = make_factory(tmp_path)
    project = factory.create(name="demo", video_url=VIDEO_URL, repo_url_or_shorthand="o/r")

    assert project.status is ProjectStatus.INITIALIZED
    assert project.description == DEFAULT_DESCRIPTION
    assert project.repo_url == "https://github.com/o/r"
    assert project.directory == tmp_path / "workspaces" / project.id.value
    assert 3000 <= project.port.number <= 9000
    assert project.created_at.tzinfo is not None
    assert not project.directory.exists()


def test_construction_keeps_full_urls_and_explicit_values(tmp_path: Path) -> None:
    factory = make_factory(tmp_path)
    project = factory.create(
        name="demo",
        video_url=VIDEO_URL,
        repo_url_or_shorthand="https://gitlab.com/o/r",
        id="fixed-id",
        port="4111",
        directory=tmp_path / "custom",
        status="evaluated",
        created_at="2025-03-01T12:00:00Z",
    )

    assert project.repo_url == "https://gitlab.com/o/r"
    assert project.id.value == "fixed-id"
    assert project.port.number == 4111
    assert project.directory == tmp_path / "custom"
    assert project.status is ProjectStatus.EVALUATED
    assert project.created_at == datetime(2025, 3, 1, 12, 0, tzinfo=UTC)


def test_repo_url_is_taken_verbatim(tmp_path: Path) -> None:
    project = make_factory(tmp_path).create(
        name="demo", video_url=VIDEO_URL, repo_url="git@github.com:o/r.git"
    )
    assert project.repo_url == "git@github.com:o/r.git"


def test_exactly_one_repo_reference_required(tmp_path: Path) -> None:
    factory = make_factory(tmp_path)
    with pytest.raises(ValueError):
        factory.create(name="demo", video_url=VIDEO_URL)
    with pytest.raises(ValueError):
        factory.create(name="demo", video_url=VIDEO_URL, repo_url="a", repo_url_or_shorthand="b")


def test_invalid_status_fails_fast(tmp_path: Path) -> None:
    with pytest.raises(InvalidStatus):
        make_factory(tmp_path).create(
            name="demo", video_url=VIDEO_URL, repo_url_or_shorthand="o/r", status="running"
        )


def test_status_setter_enforces_enum(tmp_path: Path) -> None:
    project = make_factory(tmp_path).create(
        name="demo", video_url=VIDEO_URL, repo_url_or_shorthand="o/r"
    )
    project.status = "ready"
    assert project.status is ProjectStatus.READY
    with pytest.raises(InvalidStatus):
        project.status = "done"
    assert project.status is ProjectStatus.READY


@pytest.mark.parametrize(
    ("url", "expected"),
    [
        ("https://www.youtube.com/watch?v=abc123", "abc123"),
        ("https://youtu.be/xyz789?t=10", "xyz789"),
        ("https://m.youtube.com/watch?v=mob1&feature=share", "mob1"),
        ("https://www.youtube.com/embed/emb2", "emb2"),
        ("https://www.youtube.com/v/old3", "old3"),
        ("https://www.youtube.com/watch?feature=share&v=late4", "late4"),
    ],
)
def test_extract_video_id(url: str, expected: str) -> None:
    assert extract_video_id(url) == expected


def test_video_accessors_and_dto(tmp_path: Path) -> None:
    project = make_factory(tmp_path).create(
        name="demo",
        video_url=VIDEO_URL,
        repo_url_or_shorthand="o/r",
        env_config={"A": "1"},
    )

    assert project.video_id == "abc123"
    assert project.canonical_video_url == "https://www.youtube.com/watch?v=abc123"

    payload = project.to_dto().as_payload()
    assert payload == project.to_dto().as_payload()
    assert set(payload) == {
        "name",
        "id",
        "videoURL",
        "envConfig",
        "videoId",
        "description",
        "port",
        "repoURL",
        "status",
        "directory",
        "stats",
        "scores",
        "createdAt",
    }
    assert payload["videoId"] == "abc123"
    assert payload["status"] == "initialized"


def test_unrecognized_video_url_is_an_error(tmp_path: Path) -> None:
    project = make_factory(tmp_path).create(
        name="demo", video_url="https://example.com/x", repo_url_or_shorthand="o/r"
    )
    with pytest.raises(VideoIdError):
        _ = project.video_id
    with pytest.raises(VideoIdError):
        project.to_dto()


@pytest.mark.asyncio
async def test_setup_fetches_then_writes_env_and_installs(tmp_path: Path) -> None:
    fetcher = FakeFetcher()
    installer = FakeInstaller()
    factory = make_factory(tmp_path, make_services(fetcher=fetcher, installer=installer))
    project = factory.create(
        name="demo",
        video_url=VIDEO_URL,
        repo_url_or_shorthand="o/r",
        env_config={"OPENAI_API_KEY": "sk-test"},
    )

    await project.setup()

    assert fetcher.calls == [("https://github.com/o/r", project.directory)]
    assert installer.calls == [project.directory]
    assert (project.directory / ".env").read_text(encoding="utf-8") == "OPENAI_API_KEY=sk-test"


@pytest.mark.asyncio
async def test_setup_install_failure_propagates(tmp_path: Path) -> None:
    factory = make_factory(tmp_path, make_services(installer=FakeInstaller(exit_code=1)))
    project = factory.create(
        name="demo", video_url=VIDEO_URL, repo_url_or_shorthand="o/r", env_config={"A": "1"}
    )

    with pytest.raises(InstallError, match="exit code: 1"):
        await project.setup()


@pytest.mark.asyncio
async def test_setup_collects_both_failures(tmp_path: Path) -> None:
    installer = FakeInstaller(exit_code=1)
    factory = make_factory(tmp_path, make_services(installer=installer))
    project = factory.create(
        name="demo",
        video_url=VIDEO_URL,
        repo_url_or_shorthand="o/r",
        env_config={"A": "line\nbreak"},
    )
    unhandled: list[dict[str, object]] = []
    asyncio.get_running_loop().set_exception_handler(lambda loop, context: unhandled.append(context))

    with pytest.raises(EnvConfigError):
        await project.setup()
    await asyncio.sleep(0)
    gc.collect()

    assert installer.calls == [project.directory]
    assert unhandled == []


@pytest.mark.asyncio
async def test_start_spawns_once_with_port(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    spawned: list[FakePopen] = []
    _patch_popen(monkeypatch, spawned)
    prober = FakeProber()
    services = make_services(prober=prober)
    project = make_factory(tmp_path, services).create(
        name="demo", video_url=VIDEO_URL, repo_url_or_shorthand="o/r", port=4111
    )
    await project.setup()

    await project.start_target_server()
    await project.start_target_server()

    assert len(spawned) == 1
    assert spawned[0].command == ["npm", "run", "dev"]
    assert spawned[0].env["PORT"] == "4111"
    assert spawned[0].cwd == project.directory
    assert prober.urls == ["http://localhost:4111/"]
    assert services.exit_registry.keys() == [project.id.value]
    assert project.server_state().running is True


@pytest.mark.asyncio
async def test_start_uses_start_script_when_no_dev(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    spawned: list[FakePopen] = []
    _patch_popen(monkeypatch, spawned)
    fetcher = FakeFetcher({"package.json": json.dumps({"scripts": {"start": "node ."}})})
    project = make_factory(tmp_path, make_services(fetcher=fetcher)).create(
        name="demo", video_url=VIDEO_URL, repo_url_or_shorthand="o/r"
    )
    await project.setup()

    await project.start_target_server()

    assert spawned[0].command == ["npm", "start"]


@pytest.mark.asyncio
async def test_readiness_timeout_propagates(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    spawned: list[FakePopen] = []
    _patch_popen(monkeypatch, spawned)
    prober = FakeProber(ReadinessTimeout("http://localhost:4111/", 1.0))
    project = make_factory(tmp_path, make_services(prober=prober)).create(
        name="demo", video_url=VIDEO_URL, repo_url_or_shorthand="o/r"
    )
    project.directory.mkdir(parents=True)

    with pytest.raises(ReadinessTimeout):
        await project.start_target_server()
    assert len(spawned) == 1


@pytest.mark.asyncio
async def test_stop_without_start_is_noop(tmp_path: Path) -> None:
    project = make_factory(tmp_path).create(
        name="demo", video_url=VIDEO_URL, repo_url_or_shorthand="o/r"
    )
    await project.stop_target_server()
    assert project.is_server_running() is False


@pytest.mark.asyncio
async def test_stop_terminates_and_allows_restart(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    spawned: list[FakePopen] = []
    _patch_popen(monkeypatch, spawned)
    services = make_services()
    project = make_factory(tmp_path, services).create(
        name="demo", video_url=VIDEO_URL, repo_url_or_shorthand="o/r", port=4111
    )
    await project.setup()
    await project.start_target_server()

    await project.stop_target_server()
    await project.stop_target_server()

    assert spawned[0].signals == ["terminate"]
    assert services.ports.in_use() == set()

    await project.start_target_server()
    assert len(spawned) == 2
    assert services.ports.holder(4111) == project.id.value


@pytest.mark.asyncio
async def test_stop_after_child_exited_releases_port(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    spawned: list[FakePopen] = []
    _patch_popen(monkeypatch, spawned)
    services = make_services()
    project = make_factory(tmp_path, services).create(
        name="demo", video_url=VIDEO_URL, repo_url_or_shorthand="o/r", port=4111
    )
    await project.setup()
    await project.start_target_server()
    assert services.ports.holder(4111) == project.id.value

    spawned[0].returncode = 1
    await project.stop_target_server()

    assert spawned[0].signals == []
    assert services.ports.in_use() == set()


@pytest.mark.asyncio
async def test_start_refused_while_another_project_serves_the_port(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    spawned: list[FakePopen] = []
    _patch_popen(monkeypatch, spawned)
    factory = make_factory(tmp_path)
    first = factory.create(name="a", video_url=VIDEO_URL, repo_url_or_shorthand="o/r", port=4111)
    second = factory.create(name="b", video_url=VIDEO_URL, repo_url_or_shorthand="o/r", port=4111)
    await first.setup()
    await second.setup()
    await first.start_target_server()

    with pytest.raises(PortUnavailableError):
        await second.start_target_server()
    assert len(spawned) == 1

    await first.stop_target_server()
    await second.start_target_server()
    assert len(spawned) == 2


@pytest.mark.asyncio
async def test_setup_refused_while_server_runs(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    _patch_popen(monkeypatch, [])
    project = make_factory(tmp_path).create(
        name="demo", video_url=VIDEO_URL, repo_url_or_shorthand="o/r"
    )
    await project.setup()
    await project.start_target_server()

    with pytest.raises(ServerRunningError):
        await project.setup()


@pytest.mark.asyncio
async def test_exit_cleanup_terminates_child(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    spawned: list[FakePopen] = []
    _patch_popen(monkeypatch, spawned)
    services = make_services()
    project = make_factory(tmp_path, services).create(
        name="demo", video_url=VIDEO_URL, repo_url_or_shorthand="o/r"
    )
    await project.setup()
    await project.start_target_server()

    services.exit_registry.run_cleanup()

    assert spawned[0].signals == ["terminate"]


@pytest.mark.asyncio
async def test_dispose_releases_port_and_exit_hook(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    _patch_popen(monkeypatch, [])
    services = make_services()
    project = make_factory(tmp_path, services).create(
        name="demo", video_url=VIDEO_URL, repo_url_or_shorthand="o/r"
    )
    await project.setup()
    await project.start_target_server()

    await project.dispose()

    assert services.ports.in_use() == set()
    assert services.exit_registry.keys() == []


@pytest.mark.asyncio
async def test_get_stats_reads_fetched_tree(tmp_path: Path) -> None:
    fetcher = FakeFetcher({"src/mastra/agents/a.ts": "new Agent({})", "package.json": "{}"})
    project = make_factory(tmp_path, make_services(fetcher=fetcher)).create(
        name="demo", video_url=VIDEO_URL, repo_url_or_shorthand="o/r"
    )
    await project.setup()

    stats = await project.get_stats()

    assert stats.architecture.agents.count == 1
    assert project.stats is None


def test_construction_reserves_no_port(tmp_path: Path) -> None:
    services = make_services()
    factory = make_factory(tmp_path, services)
    first = factory.create(name="a", video_url=VIDEO_URL, repo_url_or_shorthand="o/r", port=4111)
    second = factory.create(name="b", video_url=VIDEO_URL, repo_url_or_shorthand="o/r", port=4111)

    assert first.port == second.port
    assert services.ports.in_use() == set()


def test_project_without_services_uses_settings(tmp_path: Path) -> None:
    project = Project(
        name="demo",
        video_url=VIDEO_URL,
        repo_url_or_shorthand="o/r",
        settings=make_settings(tmp_path, repo_host="https://git.example.com"),
    )
    assert project.repo_url == "https://git.example.com/o/r"
