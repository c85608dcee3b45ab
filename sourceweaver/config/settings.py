# sourceweaver/config/settings.py
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional
import structlog

log = structlog.get_logger(__name__)

DEFAULT_SAMPLE_SIZE = 8192
DEFAULT_WORKERS = 1
DEFAULT_CONSOLE_SHOW_SUMMARY = True


@dataclass
class DiscoveryOptions:
    # options of one discovery run; defaults mirror a plain `sourceweaver` invocation.
    include_hidden: bool = False
    extra_ignore_files: List[Path] = field(default_factory=list)
    use_ignore_files: bool = True
    use_global_ignore: bool = True
    use_repo_exclude: bool = True
    exclude_patterns: List[str] = field(default_factory=list)
    exclude_paths: List[Path] = field(default_factory=list)
    skip_lock_files: bool = True
    follow_symlinks: bool = True
    sample_size: int = DEFAULT_SAMPLE_SIZE
    workers: int = DEFAULT_WORKERS

    def __post_init__(self):
        if self.sample_size < 1:
            log.warning("invalid_sample_size_using_default", sample_size=self.sample_size)
            self.sample_size = DEFAULT_SAMPLE_SIZE
        if self.workers < 1:
            log.warning("invalid_worker_count_using_default", workers=self.workers)
            self.workers = DEFAULT_WORKERS


@dataclass
class BundleConfig:
    # holds all configuration parameters for a single bundling run.
    root: Path = field(default_factory=lambda: Path("."))
    output_file: Optional[Path] = None
    clipboard: bool = False
    console_show_summary: bool = DEFAULT_CONSOLE_SHOW_SUMMARY

    hidden: bool = False
    no_ignore: bool = False
    no_global_ignore: bool = False
    no_repo_exclude: bool = False
    ignore_files: List[Path] = field(default_factory=list)
    exclude_patterns: List[str] = field(default_factory=list)
    include_lock_files: bool = False
    follow_symlinks: bool = True
    sample_size: int = DEFAULT_SAMPLE_SIZE
    jobs: int = DEFAULT_WORKERS

    def discovery_options(self) -> DiscoveryOptions:
        """Projects the run configuration onto the options the discovery core takes."""
        exclude_paths: List[Path] = []
        if self.output_file is not None:
            # the bundle must never contain itself.
            exclude_paths.append(self.output_file)
        return DiscoveryOptions(
            include_hidden=self.hidden,
            extra_ignore_files=list(self.ignore_files),
            use_ignore_files=not self.no_ignore,
            use_global_ignore=not self.no_global_ignore,
            use_repo_exclude=not self.no_repo_exclude,
            exclude_patterns=list(self.exclude_patterns),
            exclude_paths=exclude_paths,
            skip_lock_files=not self.include_lock_files,
            follow_symlinks=self.follow_symlinks,
            sample_size=self.sample_size,
            workers=self.jobs,
        )
