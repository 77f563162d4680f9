# tilerule/config.py
# Frozen engine constants

# Cell value that matches anything (match template) or leaves the target
# unchanged (outcome template)
WILDCARD = -1

# Cap on successful rewrites per group per call
RULE_APPLICATION_LIMIT = 10000

# Default tile edge in pixels; projects use it as the match stride
DEFAULT_TILE_SIZE = 5

# Default play grid edge, in tiles
DEFAULT_PLAY_TILES = 8

# Rotational variants materialized for a rule with rotate=True
ROTATION_VARIANTS = 4
