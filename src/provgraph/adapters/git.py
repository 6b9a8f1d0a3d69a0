"""Git support implemented on top of the ``git`` command line client."""

from __future__ import annotations

import os
import re
import subprocess
from logging import getLogger
from pathlib import Path
from typing import TYPE_CHECKING, Final

from provgraph.domain.model import VcsType
from provgraph.domain.ports import VcsError

if TYPE_CHECKING:
    from collections.abc import Sequence

    from provgraph.domain.model import RepositoryProvenance, VcsInfo

log = getLogger(__name__)

_COMMIT_HASH = re.compile(r"^(?:[0-9a-f]{40}|[0-9a-f]{64})$")
_REMOTE_NAME: Final[str] = "origin"


def _git_environment() -> dict[str, str]:
    env = os.environ.copy()
    # never block on credential prompts
    env["GIT_TERMINAL_PROMPT"] = "0"
    env.setdefault("GIT_ASKPASS", "echo")
    return env


def run_git(
    args: Sequence[str],
    *,
    cwd: Path | None = None,
    executable: str = "git",
    timeout: float | None = None,
) -> str:
    """Run a git command and return its stripped standard output.

    Raises :class:`VcsError` if git is missing, times out or exits non-zero.
    """

    command = [executable, *args]
    log.debug("Running '%s' in '%s'", " ".join(command), cwd or Path.cwd())
    try:
        completed = subprocess.run(  # noqa: S603
            command,
            cwd=cwd,
            env=_git_environment(),
            check=True,
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except FileNotFoundError as exc:
        raise VcsError(f"Git executable '{executable}' not found") from exc
    except subprocess.TimeoutExpired as exc:
        raise VcsError(f"'git {' '.join(args)}' timed out after {timeout} seconds") from exc
    except subprocess.CalledProcessError as exc:
        message = (exc.stderr or exc.stdout or "").strip() or f"exit code {exc.returncode}"
        raise VcsError(f"'git {' '.join(args)}' failed: {message}") from exc
    return completed.stdout.strip()


def parse_ls_remote(output: str) -> dict[str, str]:
    """Map ref names to commit hashes from ``git ls-remote`` output."""

    refs: dict[str, str] = {}
    for line in output.splitlines():
        sha, _, ref = line.partition("\t")
        if sha and ref:
            refs[ref.strip()] = sha.strip()
    return refs


def select_revision(refs: dict[str, str], revision: str) -> str | None:
    """Return the commit ``revision`` names, preferring tags over branches.

    Annotated tags are peeled to the commit they point to.
    """

    for ref in (
        f"refs/tags/{revision}^{{}}",
        f"refs/tags/{revision}",
        f"refs/heads/{revision}",
        revision,
    ):
        if ref in refs:
            return refs[ref]
    return None


class GitWorkingTree:
    """A git working tree on the local file system."""

    vcs_type = VcsType.GIT

    def __init__(
        self, root: Path, *, executable: str = "git", timeout: float | None = None
    ) -> None:
        self._root = root
        self._executable = executable
        self._timeout = timeout

    @property
    def root(self) -> Path:
        return self._root

    def _git(self, *args: str) -> str:
        return run_git(args, cwd=self._root, executable=self._executable, timeout=self._timeout)

    def get_remote_url(self) -> str:
        remotes = self._git("remote").split()
        if not remotes:
            return ""
        remote = _REMOTE_NAME if _REMOTE_NAME in remotes else remotes[0]
        return self._git("remote", "get-url", remote)

    def get_revision(self) -> str:
        return self._git("rev-parse", "HEAD")

    def get_path_to_root(self, path: Path) -> str:
        return Path(path).resolve().relative_to(self._root.resolve()).as_posix()


class GitCommandLine:
    """A :class:`~provgraph.domain.ports.VersionControlSystem` for git repositories."""

    vcs_type = VcsType.GIT

    def __init__(self, *, executable: str = "git", timeout: float | None = None) -> None:
        self._executable = executable
        self._timeout = timeout

    @property
    def timeout(self) -> float | None:
        """Seconds after which a single git command is given up on."""
        return self._timeout

    def _git(self, *args: str, cwd: Path | None = None) -> str:
        return run_git(args, cwd=cwd, executable=self._executable, timeout=self._timeout)

    def for_directory(self, path: Path) -> GitWorkingTree | None:
        if not Path(path).is_dir():
            return None
        try:
            toplevel = self._git("rev-parse", "--show-toplevel", cwd=path)
        except VcsError:
            return None
        return GitWorkingTree(Path(toplevel), executable=self._executable, timeout=self._timeout)

    def pin_revision(self, vcs: VcsInfo, revision: str) -> str:
        candidate = revision.strip()
        if _COMMIT_HASH.match(candidate.lower()):
            return candidate.lower()

        refs = parse_ls_remote(self._git("ls-remote", vcs.url))
        resolved = select_revision(refs, candidate)
        if resolved is None:
            raise VcsError(f"Revision '{candidate}' does not exist in '{vcs.url}'")
        return resolved

    def checkout(self, provenance: RepositoryProvenance, target: Path) -> GitWorkingTree:
        """Check out the resolved revision of ``provenance`` including submodules."""

        target.mkdir(parents=True, exist_ok=True)
        revision = provenance.resolved_revision
        self._git("init", "--quiet", cwd=target)
        self._git("remote", "add", _REMOTE_NAME, provenance.url, cwd=target)
        try:
            self._git("fetch", "--quiet", "--depth", "1", _REMOTE_NAME, revision, cwd=target)
        except VcsError:
            log.debug("Shallow fetch of '%s' failed, fetching full history", provenance.url)
            self._git("fetch", "--quiet", "--tags", _REMOTE_NAME, cwd=target)
            self._git("checkout", "--quiet", revision, cwd=target)
        else:
            self._git("checkout", "--quiet", "FETCH_HEAD", cwd=target)
        self._git("submodule", "update", "--init", "--recursive", "--quiet", cwd=target)
        log.info("Checked out '%s' at '%s'", provenance.url, revision)
        return GitWorkingTree(target, executable=self._executable, timeout=self._timeout)
