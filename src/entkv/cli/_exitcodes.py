"""Process exit codes for the entkv CLI."""

SUCCESS = 0
GENERAL_ERROR = 1
USAGE_ERROR = 2
DATABASE_ERROR = 3
VALIDATION_ERROR = 4
NOT_FOUND = 5
