"""ASCII art banner for the FinIQ CLI."""

BANNER = r"""
  _____ _       ___ ___
 |  ___(_)_ __ |_ _/ _ \
 | |_  | | '_ \ | | | | |
 |  _| | | | | || | |_| |
 |_|   |_|_| |_|___\__\_\
"""

TAGLINE = "Finance education, simulated markets and a rule-based advisor"


def print_banner() -> None:
    """Print the banner and tagline."""
    print(BANNER)
    print(f"  {TAGLINE}")
    print()
