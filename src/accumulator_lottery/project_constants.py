"""
Immutable rule parameters for the accumulator lottery.

These values define the public rules of the draw.
Changing them changes eligibility and MUST be publicly announced.
"""

# An entry recorded at height h is evaluated no earlier than height h + 2,
# so the previous block hash used for the draw did not exist when it was queued.
ELIGIBILITY_DELAY = 2

# Pool commitments are 32-byte opaque values
COMMITMENT_SIZE = 32

# Width of the rolling random state (SHA-256 digest)
RANDOM_STATE_SIZE = 32
GENESIS_RANDOM_STATE = b"\x00" * RANDOM_STATE_SIZE

# Pool used by `init` when no denomination/address is given (raw units)
DEFAULT_DENOMINATION = 100_000_000
DEFAULT_POOL_ADDRESS = "fixed-denomination-pool"

DEFAULT_STATE_FILE = "accumulator_state.json"
