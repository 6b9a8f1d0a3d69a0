"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class VcsType(StrEnum):
    GIT = "Git"
    GIT_REPO = "GitRepo"
    MERCURIAL = "Mercurial"
    SUBVERSION = "Subversion"
    CVS = "CVS"
    UNKNOWN = ""

    @classmethod
    def for_name(cls, name: str | None) -> VcsType:
        """Return the type for ``name``, accepting aliases in any letter case."""

        if name is None:
            return cls.UNKNOWN
        return _VCS_TYPE_ALIASES.get(name.strip().lower(), cls.UNKNOWN)


_VCS_TYPE_ALIASES: dict[str, VcsType] = {
    "git": VcsType.GIT,
    "gitrepo": VcsType.GIT_REPO,
    "git-repo": VcsType.GIT_REPO,
    "repo": VcsType.GIT_REPO,
    "mercurial": VcsType.MERCURIAL,
    "hg": VcsType.MERCURIAL,
    "subversion": VcsType.SUBVERSION,
    "svn": VcsType.SUBVERSION,
    "cvs": VcsType.CVS,
}


class PackageLinkage(StrEnum):
    """How a dependency is linked into the thing that depends on it."""

    DYNAMIC = "DYNAMIC"
    STATIC = "STATIC"
    PROJECT_DYNAMIC = "PROJECT_DYNAMIC"
    PROJECT_STATIC = "PROJECT_STATIC"


class HashAlgorithm(StrEnum):
    NONE = ""
    UNKNOWN = "UNKNOWN"
    MD5 = "MD5"
    SHA1 = "SHA-1"
    SHA256 = "SHA-256"
    SHA384 = "SHA-384"
    SHA512 = "SHA-512"

    @property
    def hashlib_name(self) -> str | None:
        return _HASHLIB_NAMES.get(self)

    @classmethod
    def for_digest(cls, value: str) -> HashAlgorithm:
        """Guess the algorithm from the length of a hex digest."""

        if not value:
            return cls.NONE
        return _ALGORITHMS_BY_HEX_LENGTH.get(len(value), cls.UNKNOWN)


_HASHLIB_NAMES: dict[HashAlgorithm, str] = {
    HashAlgorithm.MD5: "md5",
    HashAlgorithm.SHA1: "sha1",
    HashAlgorithm.SHA256: "sha256",
    HashAlgorithm.SHA384: "sha384",
    HashAlgorithm.SHA512: "sha512",
}

_ALGORITHMS_BY_HEX_LENGTH: dict[int, HashAlgorithm] = {
    32: HashAlgorithm.MD5,
    40: HashAlgorithm.SHA1,
    64: HashAlgorithm.SHA256,
    96: HashAlgorithm.SHA384,
    128: HashAlgorithm.SHA512,
}


class Severity(StrEnum):
    HINT = "HINT"
    WARNING = "WARNING"
    ERROR = "ERROR"


class ScopeExcludeReason(StrEnum):
    BUILD_DEPENDENCY_OF = "BUILD_DEPENDENCY_OF"
    DEV_DEPENDENCY_OF = "DEV_DEPENDENCY_OF"
    DOCUMENTATION_DEPENDENCY_OF = "DOCUMENTATION_DEPENDENCY_OF"
    PROVIDED_DEPENDENCY_OF = "PROVIDED_DEPENDENCY_OF"
    RUNTIME_DEPENDENCY_OF = "RUNTIME_DEPENDENCY_OF"
    TEST_DEPENDENCY_OF = "TEST_DEPENDENCY_OF"


class SourceCodeOrigin(StrEnum):
    VCS = "VCS"
    ARTIFACT = "ARTIFACT"
