"""Quiz engine for lesson steps: gap grammar, scoring, player and attempts."""
