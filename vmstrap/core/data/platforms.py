"""
L0 Data — Platform lookup table.

Pure data. No logic. One row per supported OS family; the prober turns
a row into an ``InstallPlan``. Keys are ``OsFamily`` values.
"""

from __future__ import annotations

# Package names shared by every family except the SSH client package.
_BASE_PACKAGES: tuple[str, ...] = (
    "git", "neovim", "tmux", "zsh", "curl", "tree", "htop", "fzf",
)

# Linux package managers in detection order. Container base images
# may carry more than one on PATH; the first match wins.
LINUX_DETECTION_ORDER: tuple[tuple[str, str], ...] = (
    ("apt-get", "linux-debian"),
    ("pacman", "linux-arch"),
    ("dnf", "linux-fedora"),
    ("yum", "linux-rhel"),
)

MACOS_PACKAGE_MANAGER = "brew"
HOMEBREW_URL = "https://brew.sh"

# ``privileged`` rows get the sudo wrapper for non-root users.
# dnf/yum check-update exit 100 when updates are available.
PLATFORM_TABLE: dict[str, dict] = {
    "linux-debian": {
        "package_manager": "apt-get",
        "update": ["update"],
        "install": ["install", "-y"],
        "update_ok": (0,),
        "ssh_package": "openssh-client",
        "packages": (*_BASE_PACKAGES, "openssh-client"),
        "privileged": True,
    },
    "linux-arch": {
        "package_manager": "pacman",
        "update": ["-Sy"],
        "install": ["-S", "--noconfirm"],
        "update_ok": (0,),
        "ssh_package": "openssh",
        "packages": (*_BASE_PACKAGES, "openssh"),
        "privileged": True,
    },
    "linux-fedora": {
        "package_manager": "dnf",
        "update": ["check-update"],
        "install": ["install", "-y"],
        "update_ok": (0, 100),
        "ssh_package": "openssh-clients",
        "packages": (*_BASE_PACKAGES, "openssh-clients"),
        "privileged": True,
    },
    "linux-rhel": {
        "package_manager": "yum",
        "update": ["check-update"],
        "install": ["install", "-y"],
        "update_ok": (0, 100),
        "ssh_package": "openssh-clients",
        "packages": (*_BASE_PACKAGES, "openssh-clients"),
        "privileged": True,
    },
    "macos": {
        "package_manager": "brew",
        "update": ["update"],
        "install": ["install"],
        "update_ok": (0,),
        "ssh_package": "openssh",
        "packages": (*_BASE_PACKAGES, "openssh"),
        # Homebrew refuses to run as root.
        "privileged": False,
    },
}

# Executables checked on PATH after installation.
ESSENTIAL_BINARIES: tuple[str, ...] = ("git", "zsh", "tmux", "curl", "ssh")
OPTIONAL_BINARIES: tuple[str, ...] = ("nvim", "tree", "htop", "fzf")
