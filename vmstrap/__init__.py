"""vmstrap — bootstrap a fresh VM: baseline tools, shell config, dotfiles deploy key."""

__version__ = "0.1.0"
