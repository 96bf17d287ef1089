import json
from pathlib import Path

import pytest

from launchpad.core.stats_analyzer import StatsAnalyzer
from launchpad.errors import StatsError


def _write(root: Path, rel_path: str, content: str) -> None:
    target = root / rel_path
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(content, encoding="utf-8")


def test_single_agent_file_counts_once(tmp_path: Path) -> None:
    _write(tmp_path, "src/mastra/agents/weather.ts", "export const x = 1;\n")

    stats = StatsAnalyzer().analyze(tmp_path)

    assert stats.architecture.agents.count == 1
    assert stats.architecture.tools.count == 0
    assert stats.architecture.workflows.count == 0


def test_counts_are_per_file_not_per_occurrence(tmp_path: Path) -> None:
    _write(
        tmp_path,
        "src/index.ts",
        "new Agent({})\nnew Agent ({})\ncreateTool({})\ncreateWorkflow({})\n",
    )
    _write(tmp_path, "src/mastra/tools/search.ts", "export {}\n")
    _write(tmp_path, "src/mastra/workflows/flow.tsx", "createWorkflow({})\n")

    stats = StatsAnalyzer().analyze(tmp_path)

    assert stats.architecture.agents.count == 1
    assert stats.architecture.tools.count == 2
    assert stats.architecture.workflows.count == 2


def test_excluded_dirs_and_extensions_are_ignored(tmp_path: Path) -> None:
    _write(tmp_path, "src/node_modules/pkg/agents/a.ts", "new Agent({})")
    _write(tmp_path, "src/dist/agents/a.js", "new Agent({})")
    _write(tmp_path, "src/agents/readme.md", "new Agent({})")
    _write(tmp_path, "lib/agents/outside.ts", "new Agent({})")

    stats = StatsAnalyzer().analyze(tmp_path)

    assert stats.architecture.agents.count == 0


def test_technologies_from_dependencies_and_source(tmp_path: Path) -> None:
    _write(
        tmp_path,
        "package.json",
        json.dumps(
            {
                "dependencies": {"chromadb": "^1.8.0", "@smithery/sdk": "1.0.0"},
                "devDependencies": {"viem": "2.0.0"},
            }
        ),
    )
    _write(tmp_path, "src/browse.ts", "import { chromium } from 'playwright';\n")

    detected = StatsAnalyzer().analyze(tmp_path).detected_technologies

    assert detected["chroma"] is True
    assert detected["rag"] is True
    assert detected["smithery"] is True
    assert detected["recall"] is True
    assert detected["webBrowsing"] is True
    assert detected["workos"] is False
    assert detected["browserbase"] is False
    assert set(detected) == {
        "smithery",
        "workos",
        "browserbase",
        "arcade",
        "chroma",
        "recall",
        "confidentAi",
        "rag",
        "auth",
        "webBrowsing",
    }


def test_invalid_manifest_and_missing_src_are_not_fatal(tmp_path: Path) -> None:
    _write(tmp_path, "package.json", "{oops")

    stats = StatsAnalyzer().analyze(tmp_path)

    assert stats.architecture.agents.count == 0
    assert not any(stats.detected_technologies.values())


def test_unreadable_file_is_skipped(tmp_path: Path) -> None:
    (tmp_path / "src").mkdir()
    (tmp_path / "src" / "binary.ts").write_bytes(b"\xff\xfe\x00new Agent(")
    _write(tmp_path, "src/tools/t.ts", "createTool({})")

    stats = StatsAnalyzer().analyze(tmp_path)

    assert stats.architecture.agents.count == 0
    assert stats.architecture.tools.count == 1


def test_missing_root_is_fatal(tmp_path: Path) -> None:
    with pytest.raises(StatsError):
        StatsAnalyzer().analyze(tmp_path / "missing")
