"""Heuristic static analysis of a fetched project tree."""

from __future__ import annotations

import logging
import os
import re
from collections.abc import Iterator
from dataclasses import dataclass, field
from pathlib import Path

from launchpad.core.manifest import PackageManifest, read_manifest
from launchpad.errors import StatsError
from launchpad.models.project import ArchitectureStats, ElementCount, ProjectStats

logger = logging.getLogger(__name__)

SOURCE_DIR = "src"
SOURCE_EXTENSIONS = frozenset({".ts", ".tsx", ".js", ".jsx"})
EXCLUDED_DIRS = frozenset({"node_modules", ".git", "dist", "build", ".mastra"})


@dataclass(frozen=True, slots=True)
class ElementRule:
    """Counts a file when it sits under ``segment`` or matches ``pattern``."""

    segment: str
    pattern: re.Pattern[str]

    def matches(self, rel_path: Path, text: str) -> bool:
        return self.segment in rel_path.parts[:-1] or bool(self.pattern.search(text))


@dataclass(frozen=True, slots=True)
class TechnologyRule:
    """A technology is present when a dependency or a source pattern says so."""

    name: str
    dependencies: tuple[str, ...] = ()
    pattern: re.Pattern[str] | None = None


ELEMENT_RULES = {
    "agents": ElementRule("agents", re.compile(r"new\s+Agent\s*\(")),
    "tools": ElementRule("tools", re.compile(r"createTool\s*\(")),
    "workflows": ElementRule("workflows", re.compile(r"createWorkflow\s*\(")),
}

TECHNOLOGY_RULES = (
    TechnologyRule("smithery", ("@smithery/sdk",)),
    TechnologyRule("workos", ("@workos/node",)),
    TechnologyRule("browserbase", ("browserbase",)),
    TechnologyRule("arcade", ("@arcadeai/arcadejs",), re.compile(r"arcade-ai")),
    TechnologyRule("chroma", ("chromadb",)),
    TechnologyRule("recall", ("viem", "ethers"), re.compile(r"web3|wallet|ethers|viem")),
    TechnologyRule("confidentAi", ("@mastra/evals",), re.compile(r"\bevals?\b|Metric\s*\{")),
    TechnologyRule("rag", ("chromadb",), re.compile(r"retrieval|vector|embedding", re.IGNORECASE)),
    TechnologyRule("auth", ("@workos/node",), re.compile(r"auth|oauth|login", re.IGNORECASE)),
    TechnologyRule(
        "webBrowsing",
        ("browserbase",),
        re.compile(r"puppeteer|playwright|browserbase", re.IGNORECASE),
    ),
)


@dataclass(slots=True)
class SourceFile:
    rel_path: Path
    text: str


@dataclass(slots=True)
class StatsAnalyzer:
    """Count architecture elements and detect technologies.

    Counts are per file: a file with several agent constructions counts once.
    Detection is advisory; substring matches can yield false positives.
    """

    element_rules: dict[str, ElementRule] = field(default_factory=lambda: dict(ELEMENT_RULES))
    technology_rules: tuple[TechnologyRule, ...] = TECHNOLOGY_RULES

    def analyze(self, root: Path) -> ProjectStats:
        if not root.is_dir():
            msg = f"Cannot analyze {root}: not a directory"
            raise StatsError(msg)

        manifest = read_manifest(root) or PackageManifest()
        logger.info("Found %d dependencies in %s", len(manifest.all_dependencies()), root)

        files = list(self._load_sources(root))
        logger.info("Found %d source files to analyze", len(files))

        counts = {
            name: sum(1 for source in files if rule.matches(source.rel_path, source.text))
            for name, rule in self.element_rules.items()
        }
        architecture = ArchitectureStats(
            agents=ElementCount(count=counts.get("agents", 0)),
            tools=ElementCount(count=counts.get("tools", 0)),
            workflows=ElementCount(count=counts.get("workflows", 0)),
        )
        detected = {
            rule.name: self._detect(rule, manifest, files) for rule in self.technology_rules
        }
        enabled = [name for name, present in detected.items() if present]
        logger.info(
            "Architecture counts - agents: %d, tools: %d, workflows: %d; technologies: %s",
            architecture.agents.count,
            architecture.tools.count,
            architecture.workflows.count,
            ", ".join(enabled) or "none",
        )
        return ProjectStats(architecture=architecture, detected_technologies=detected)

    @staticmethod
    def _detect(rule: TechnologyRule, manifest: PackageManifest, files: list[SourceFile]) -> bool:
        if any(manifest.has_dependency(name) for name in rule.dependencies):
            return True
        if rule.pattern is None:
            return False
        return any(rule.pattern.search(source.text) for source in files)

    @staticmethod
    def _load_sources(root: Path) -> Iterator[SourceFile]:
        source_root = root / SOURCE_DIR
        if not source_root.is_dir():
            return
        for dirpath, dirnames, filenames in os.walk(source_root, followlinks=False):
            dirnames[:] = sorted(name for name in dirnames if name not in EXCLUDED_DIRS)
            for filename in sorted(filenames):
                path = Path(dirpath) / filename
                if path.suffix not in SOURCE_EXTENSIONS:
                    continue
                try:
                    text = path.read_text(encoding="utf-8")
                except (OSError, UnicodeDecodeError) as exc:
                    logger.debug("Skipping unreadable %s: %s", path, exc)
                    continue
                yield SourceFile(rel_path=path.relative_to(root), text=text)
