"""Project version constants.

These constants are stamped into fleet reports so that an exported report can be
traced back to a specific engine/schema version.
"""

ENGINE_NAME: str = "idlecheck"
ENGINE_VERSION: str = "0.1.0"

SCHEMA_VERSION: int = 1
