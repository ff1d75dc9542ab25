"""buildx installation.

This module handles:
- Resolving release versions (including 'latest') through the GitHub API
- Downloading release binaries with checksum verification
- A local binary cache keyed by version and platform
- Building buildx from a git source reference with the Docker CLI
- Installing the binary as a Docker CLI plugin or as a standalone binary
"""

from __future__ import annotations

import hashlib
import logging
import platform
import shutil
import stat
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

import httpx

from setup_buildx import actions
from setup_buildx.buildx.runner import run_checked
from setup_buildx.config import Settings, get_settings

if TYPE_CHECKING:
    from setup_buildx.buildx.tool import Buildx

logger = logging.getLogger(__name__)

# Timeout for GitHub API requests (seconds)
API_TIMEOUT = 30

# Chunk size for downloads (bytes)
DOWNLOAD_CHUNK_SIZE = 64 * 1024  # 64 KB

SOURCE_REF_PREFIXES = ("https://", "http://", "git://", "git@", "github.com/")

# platform.machine() values mapped to release asset architectures
ARCH_ALIASES = {
    "x86_64": "amd64",
    "amd64": "amd64",
    "aarch64": "arm64",
    "arm64": "arm64",
    "armv7l": "arm-v7",
    "armv6l": "arm-v6",
    "ppc64le": "ppc64le",
    "s390x": "s390x",
    "riscv64": "riscv64",
}


class DownloadError(Exception):
    """Raised when a release download fails."""

    def __init__(self, message: str, code: str = "download_error") -> None:
        """Initialize DownloadError.

        Args:
            message: Error description.
            code: Error code for structured error handling.
        """
        super().__init__(message)
        self.code = code


class VerificationError(Exception):
    """Raised when checksum verification fails."""

    def __init__(self, message: str, code: str = "verification_error") -> None:
        """Initialize VerificationError.

        Args:
            message: Error description.
            code: Error code for structured error handling.
        """
        super().__init__(message)
        self.code = code


class InstallError(Exception):
    """Raised when buildx cannot be built or installed."""

    def __init__(self, message: str, code: str = "install_error") -> None:
        """Initialize InstallError.

        Args:
            message: Error description.
            code: Error code for structured error handling.
        """
        super().__init__(message)
        self.code = code


@dataclass
class ReleaseAsset:
    """Release binary of a buildx version for one platform."""

    version: str
    filename: str
    url: str
    checksums_url: str

    def __post_init__(self) -> None:
        """Validate fields after initialization."""
        if not self.version:
            raise ValueError("version must be provided")
        if not self.url:
            raise ValueError("url must be provided")


def is_source_ref(version: str) -> bool:
    """Whether a version input names a git source instead of a release.

    Args:
        version: The version input.

    Returns:
        True for git URLs/remotes and refs with a '#' fragment.
    """
    if not version:
        return False
    return version.startswith(SOURCE_REF_PREFIXES) or "#" in version


def binary_name(system: str | None = None) -> str:
    """Return the executable name of a standalone buildx."""
    system = (system or platform.system()).lower()
    return "buildx.exe" if system == "windows" else "buildx"


def plugin_name(system: str | None = None) -> str:
    """Return the executable name of the buildx Docker CLI plugin."""
    system = (system or platform.system()).lower()
    return "docker-buildx.exe" if system == "windows" else "docker-buildx"


def platform_suffix(system: str | None = None, machine: str | None = None) -> str:
    """Return the release asset suffix for a platform, e.g. 'linux-amd64'.

    Args:
        system: Operating system name (defaults to the current one).
        machine: Machine architecture (defaults to the current one).

    Returns:
        Asset suffix.

    Raises:
        InstallError: If the architecture has no release binaries.
    """
    system = (system or platform.system()).lower()
    machine = (machine or platform.machine()).lower()
    arch = ARCH_ALIASES.get(machine)
    if arch is None:
        raise InstallError(
            f"Unsupported architecture: {machine}", code="unsupported_platform"
        )
    suffix = f"{system}-{arch}"
    if system == "windows":
        suffix += ".exe"
    return suffix


def build_release_asset(
    version: str,
    base_url: str,
    suffix: str,
) -> ReleaseAsset:
    """Build URLs for a release binary and its checksums.

    Args:
        version: Release version without the leading 'v'.
        base_url: Base URL of release downloads.
        suffix: Platform suffix (see platform_suffix).

    Returns:
        ReleaseAsset for the platform.
    """
    tag = f"v{version}"
    filename = f"buildx-{tag}.{suffix}"
    return ReleaseAsset(
        version=version,
        filename=filename,
        url=f"{base_url}/{tag}/{filename}",
        checksums_url=f"{base_url}/{tag}/checksums.txt",
    )


def _api_headers(token: str | None) -> dict[str, str]:
    headers = {"Accept": "application/vnd.github+json"}
    if token:
        headers["Authorization"] = f"Bearer {token}"
    return headers


def resolve_release_version(
    client: httpx.Client,
    version: str,
    settings: Settings,
) -> str:
    """Resolve a version input to a concrete release version.

    Args:
        client: HTTPX client instance.
        version: Version input ('', 'latest', 'v0.11.2' or '0.11.2').
        settings: Settings with API URL and token.

    Returns:
        Release version without the leading 'v'.

    Raises:
        DownloadError: If the latest release cannot be looked up.
    """
    if version and version != "latest":
        return version.removeprefix("v")

    url = f"{settings.github_api_url}/repos/{settings.buildx_repo}/releases/latest"
    logger.debug("Resolving latest buildx release from %s", url)
    try:
        response = client.get(
            url, headers=_api_headers(settings.github_token), timeout=API_TIMEOUT
        )
        response.raise_for_status()
        tag_name = response.json()["tag_name"]
    except httpx.HTTPStatusError as e:
        raise DownloadError(
            f"HTTP error resolving latest release: {e.response.status_code}",
            code="http_error",
        ) from e
    except httpx.TimeoutException as e:
        raise DownloadError(
            f"Timeout resolving latest release from {url}", code="timeout"
        ) from e
    except httpx.RequestError as e:
        raise DownloadError(
            f"Network error resolving latest release: {e}", code="network_error"
        ) from e
    except (KeyError, ValueError) as e:
        raise DownloadError(
            f"Unexpected response resolving latest release from {url}",
            code="invalid_response",
        ) from e

    logger.info("Latest buildx release is %s", tag_name)
    return str(tag_name).removeprefix("v")


def parse_checksums(content: str, filename: str) -> str | None:
    """Look up a release asset in the release's checksums.txt.

    buildx releases list one '<sha256> *<asset>' line per binary.

    Args:
        content: checksums.txt as published next to the assets.
        filename: Asset filename, e.g. 'buildx-v0.11.2.linux-amd64'.

    Returns:
        Lower-cased digest, or None if the asset is not listed.
    """
    for line in content.splitlines():
        digest, _, asset = line.strip().partition(" ")
        if asset.strip().lstrip("*") == filename:
            return digest.lower()
    return None


def _http_error(action: str, url: str, e: httpx.HTTPError) -> DownloadError:
    if isinstance(e, httpx.HTTPStatusError):
        return DownloadError(
            f"HTTP error {action} {url}: {e.response.status_code}", code="http_error"
        )
    if isinstance(e, httpx.TimeoutException):
        return DownloadError(f"Timeout {action} {url}", code="timeout")
    return DownloadError(f"Network error {action} {url}: {e}", code="network_error")


def fetch_checksums(
    client: httpx.Client,
    checksums_url: str,
    timeout: float = API_TIMEOUT,
) -> str:
    """Fetch the checksums.txt of a buildx release.

    Release assets are served through a redirect to GitHub's object
    storage, so redirects are followed.

    Raises:
        DownloadError: If the listing cannot be fetched.
    """
    logger.debug("Fetching release checksums from %s", checksums_url)
    try:
        response = client.get(checksums_url, timeout=timeout, follow_redirects=True)
        response.raise_for_status()
    except httpx.HTTPError as e:
        raise _http_error("fetching", checksums_url, e) from e
    return response.text


def download_file(
    client: httpx.Client,
    url: str,
    dest_path: Path,
    expected_checksum: str | None = None,
    timeout: float = 600,
) -> str:
    """Stream a release binary to disk, hashing it on the way.

    Args:
        client: HTTPX client instance.
        url: Asset URL (redirects to object storage are followed).
        dest_path: Where the binary is written.
        expected_checksum: SHA256 from checksums.txt, if known.
        timeout: Download timeout in seconds.

    Returns:
        SHA256 of the written file.

    Raises:
        DownloadError: If the asset cannot be downloaded.
        VerificationError: If the digest does not match; the file is removed.
    """
    logger.info("Downloading %s", url)
    sha256 = hashlib.sha256()
    size = 0
    try:
        with client.stream(
            "GET", url, timeout=timeout, follow_redirects=True
        ) as response:
            response.raise_for_status()
            dest_path.parent.mkdir(parents=True, exist_ok=True)
            with dest_path.open("wb") as f:
                for chunk in response.iter_bytes(DOWNLOAD_CHUNK_SIZE):
                    f.write(chunk)
                    sha256.update(chunk)
                    size += len(chunk)
    except httpx.HTTPError as e:
        raise _http_error("downloading", url, e) from e

    digest = sha256.hexdigest()
    if expected_checksum and digest != expected_checksum.lower():
        dest_path.unlink(missing_ok=True)
        raise VerificationError(
            f"{dest_path.name} does not match checksums.txt: "
            f"expected {expected_checksum}, got {digest}"
        )

    logger.info("Downloaded %s (%d bytes, sha256 %s)", dest_path.name, size, digest)
    return digest


def _make_executable(path: Path) -> None:
    mode = path.stat().st_mode
    path.chmod(mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)


def download_release(
    client: httpx.Client,
    version: str,
    settings: Settings | None = None,
    use_cache: bool = True,
    suffix: str | None = None,
) -> Path:
    """Download a buildx release binary.

    Args:
        client: HTTPX client instance.
        version: Version input ('' or 'latest' for the newest release).
        settings: Settings; loaded from environment if not provided.
        use_cache: Reuse and populate the local binary cache.
        suffix: Platform suffix override (defaults to the current platform).

    Returns:
        Path to the downloaded (or cached) binary.

    Raises:
        DownloadError: If the release cannot be downloaded.
        VerificationError: If checksum verification fails.
    """
    settings = settings or get_settings()
    resolved = resolve_release_version(client, version, settings)
    asset = build_release_asset(
        resolved, settings.releases_base_url, suffix or platform_suffix()
    )

    version_dir = settings.cache_dir / resolved
    target = version_dir / asset.filename
    if use_cache and target.is_file():
        logger.info("Using cached buildx %s from %s", resolved, target)
        return target

    expected_checksum: str | None = None
    if settings.verify_checksum:
        try:
            checksums = fetch_checksums(client, asset.checksums_url)
        except DownloadError as e:
            # Older releases do not publish checksums.txt
            logger.warning("Cannot verify %s: %s", asset.filename, e)
        else:
            expected_checksum = parse_checksums(checksums, asset.filename)
            if not expected_checksum:
                logger.warning(
                    "Could not find checksum for %s in checksums.txt", asset.filename
                )

    version_dir.mkdir(parents=True, exist_ok=True)
    with tempfile.NamedTemporaryFile(
        dir=version_dir, suffix=".tmp", delete=False
    ) as tmp_file:
        tmp_path = Path(tmp_file.name)

    try:
        download_file(
            client,
            asset.url,
            tmp_path,
            expected_checksum=expected_checksum,
            timeout=settings.download_timeout,
        )
        _make_executable(tmp_path)
        shutil.move(str(tmp_path), str(target))
    except Exception:
        tmp_path.unlink(missing_ok=True)
        raise

    return target


async def build_from_source(ref: str, buildx: Buildx, output_dir: Path) -> Path:
    """Build buildx from a git source reference.

    Requires the Docker CLI with a working buildx to run the build.

    Args:
        ref: Git context (e.g. 'https://github.com/docker/buildx.git#master').
        buildx: Installed buildx used to run the build.
        output_dir: Directory receiving the build output.

    Returns:
        Path to the built binary.

    Raises:
        CommandError: If the build fails.
        InstallError: If the build produced no binary.
    """
    output_dir.mkdir(parents=True, exist_ok=True)
    command, args = buildx.get_command(
        [
            "build",
            "--target",
            "binaries",
            "--platform",
            "local",
            "--build-arg",
            "BUILDKIT_CONTEXT_KEEP_GIT_DIR=1",
            "--output",
            f"type=local,dest={output_dir}",
            ref,
        ]
    )
    await run_checked(command, args)

    binary = output_dir / binary_name()
    if not binary.is_file():
        raise InstallError(
            f"Build of {ref} produced no buildx binary in {output_dir}",
            code="build_output_missing",
        )
    _make_executable(binary)
    return binary


def _install(binary: Path, dest: Path) -> Path:
    try:
        dest.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(binary, dest)
        _make_executable(dest)
    except OSError as e:
        raise InstallError(f"Failed to install {binary} to {dest}: {e}") from e
    logger.info("Installed buildx to %s", dest)
    return dest


def install_plugin(binary: Path, plugins_dir: Path) -> Path:
    """Install buildx as a Docker CLI plugin.

    Args:
        binary: Downloaded or built binary.
        plugins_dir: Docker CLI plugins directory.

    Returns:
        Path of the installed plugin.

    Raises:
        InstallError: If the binary cannot be copied.
    """
    return _install(binary, plugins_dir / plugin_name())


def install_standalone(binary: Path, bin_dir: Path) -> Path:
    """Install buildx as a standalone binary and put it on PATH.

    Args:
        binary: Downloaded or built binary.
        bin_dir: Directory to install into.

    Returns:
        Path of the installed binary.

    Raises:
        InstallError: If the binary cannot be copied.
    """
    dest = _install(binary, bin_dir / binary_name())
    actions.add_path(str(bin_dir))
    return dest


__all__ = [
    "DownloadError",
    "InstallError",
    "ReleaseAsset",
    "VerificationError",
    "build_from_source",
    "build_release_asset",
    "download_file",
    "download_release",
    "fetch_checksums",
    "install_plugin",
    "install_standalone",
    "is_source_ref",
    "parse_checksums",
    "platform_suffix",
    "resolve_release_version",
]
