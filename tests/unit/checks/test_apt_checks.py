"""Tests for APT source and legacy apt-key checks."""

from fakes import FakeToolset

from cudadiag.checks.apt import RepoSourceFile, apt_sources, grep_after, legacy_keys
from cudadiag.core.result import CheckResult, CheckStatus

MODERN = (
    "deb [signed-by=/usr/share/keyrings/cuda-archive-keyring.gpg] "
    "https://developer.download.nvidia.com/compute/cuda/repos/ubuntu2204/x86_64/ /\n"
)
LEGACY = (
    "deb https://developer.download.nvidia.com/compute/cuda/repos/"
    "ubuntu2204/x86_64/ /\n"
)
DEB822 = """\
Types: deb
URIs: https://developer.download.nvidia.com/compute/cuda/repos/ubuntu2404/x86_64/
Suites: /
Signed-By: /usr/share/keyrings/cuda-archive-keyring.gpg
"""


def results(entries):
    return [e for e in entries if isinstance(e, CheckResult)]


def test_signed_by_source_passes(make_ctx, config):
    source = config.apt.sources_dir / "cuda-ubuntu2204-x86_64.list"
    source.write_text(MODERN)

    entries = list(apt_sources(make_ctx()))

    assert f"Found: {source}" in entries
    assert MODERN.strip() in entries
    [result] = results(entries)
    assert result.status is CheckStatus.PASS
    assert result.message == "Uses 'signed-by' directive (modern APT method)"


def test_legacy_source_warns(make_ctx, config):
    (config.apt.sources_dir / "cuda.list").write_text(LEGACY)

    [result] = results(apt_sources(make_ctx()))

    assert result.status is CheckStatus.WARN
    assert result.message == "No 'signed-by' directive (legacy APT method)"


def test_deb822_signed_by_matches_case_insensitively(make_ctx, config):
    (config.apt.sources_dir / "cuda.sources").write_text(DEB822)

    [result] = results(apt_sources(make_ctx()))

    assert result.status is CheckStatus.PASS


def test_each_source_file_judged(make_ctx, config):
    (config.apt.sources_dir / "cuda-a.list").write_text(MODERN)
    (config.apt.sources_dir / "nvidia-b.list").write_text(LEGACY)

    statuses = [r.status for r in results(apt_sources(make_ctx()))]

    assert statuses == [CheckStatus.PASS, CheckStatus.WARN]


def test_falls_back_to_sources_list(make_ctx, config):
    config.apt.sources_list.write_text(
        "deb http://archive.ubuntu.com/ubuntu jammy main\n" + LEGACY
    )

    entries = list(apt_sources(make_ctx()))

    warning = results(entries)[0]
    assert warning.status is CheckStatus.WARN
    assert warning.message.startswith("No CUDA/NVIDIA sources found in")
    assert f"Found CUDA repo in {config.apt.sources_list}:" in entries
    assert LEGACY.strip() in entries
    assert len(results(entries)) == 1


def test_no_repository_configured(make_ctx):
    entries = list(apt_sources(make_ctx()))

    assert results(entries)[-1] == CheckResult.failed(
        "No CUDA repository configured in APT"
    )


def test_missing_sources_dir(make_ctx, config):
    config.apt.sources_dir.rmdir()

    [result] = results(apt_sources(make_ctx()))

    assert result.status is CheckStatus.FAIL
    assert result.message.endswith("directory not found")


def test_repo_source_file(tmp_path):
    path = tmp_path / "cuda.list"
    path.write_text(MODERN)

    assert RepoSourceFile.read(path, "signed-by").signed_by


def test_grep_after_merges_and_separates():
    lines = ["a", "cuda 1", "b", "c", "d", "e", "NVIDIA 2", "f"]

    assert grep_after(lines, "cuda|nvidia", 1) == [
        "cuda 1", "b", "--", "NVIDIA 2", "f",
    ]
    assert grep_after(lines, "cuda|nvidia", 5) == lines[1:]


def test_legacy_keys_unavailable(make_ctx):
    [result] = results(legacy_keys(make_ctx(FakeToolset(legacy=None))))

    assert result.status is CheckStatus.WARN
    assert result.message == (
        "apt-key command not available (expected on modern systems)"
    )


def test_legacy_keys_found(make_ctx):
    listing = "\n".join([
        "/etc/apt/trusted.gpg",
        "--------------------",
        "pub   rsa4096 2017-09-28 [SCA]",
        "      AE09 FE4B BD22 3A84 B2CC  FCE3 F60F 4B3D 7FA2 AF80",
        "uid           [ unknown] cudatools <cudatools@nvidia.com>",
        "",
    ])

    entries = list(legacy_keys(make_ctx(FakeToolset(legacy=listing))))

    assert "uid           [ unknown] cudatools <cudatools@nvidia.com>" in entries
    assert not results(entries)


def test_legacy_keys_none_relevant(make_ctx):
    tools = FakeToolset(legacy="pub   rsa4096 2018-09-17 [SC]\nuid  Ubuntu\n")

    entries = list(legacy_keys(make_ctx(tools)))

    assert entries[-1] == "    No CUDA/NVIDIA keys in legacy keyring"
