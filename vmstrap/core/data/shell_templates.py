"""
L0 Data — Embedded shell configuration templates.

Written verbatim to the user's home by the shell config writer.
"""

from __future__ import annotations

ZSHRC = """\
# Basic zsh config
export EDITOR=nvim
HISTFILE=~/.histfile
HISTSIZE=1000
SAVEHIST=1000

# Basic aliases
alias ll='ls -la'
alias gs='git status'
alias ga='git add'
alias gc='git commit'
alias gp='git push'
alias gl='git log --oneline'
alias vim='nvim'

# Simple prompt
PROMPT='%F{green}%n@%m%f:%F{blue}%~%f$ '

# Enable completion
autoload -Uz compinit
compinit
"""

TMUX_CONF = """\
# Basic tmux config
set -g mouse on
set -g base-index 1
setw -g pane-base-index 1

# Better splitting
bind | split-window -h
bind - split-window -v

# Vim navigation
bind h select-pane -L
bind j select-pane -D
bind k select-pane -U
bind l select-pane -R

# Status bar
set -g status-bg black
set -g status-fg white
set -g status-right '#(whoami)@#h %Y-%m-%d %H:%M'
"""

# Relative to the user's home directory.
SHELL_CONFIG_FILES: dict[str, str] = {
    ".zshrc": ZSHRC,
    ".tmux.conf": TMUX_CONF,
}
