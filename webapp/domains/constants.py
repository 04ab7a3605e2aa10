# Schema version this code expects, advanced by one per migration step
DB_VERSION = 2

# Row in the marker table holding the schema version
DB_VERSION_KEY = "db_version"

# Each subdomain keeps two challenge values so a renewal can't clobber one
# that is still being validated
TXT_SLOTS_PER_SUBDOMAIN = 2

# Matches acme-dns, 40 characters from the URL safe alphabet
PASSWORD_BYTES = 30

# Lowest cost bcrypt accepts, used by the tests
MIN_BCRYPT_ROUNDS = 4

# Account columns dropped by the version 1 upgrade
LEGACY_RECORD_COLUMNS = ["value", "lastactive"]

# Header pair, acme-dns style
# See: https://github.com/joohoi/acme-dns#update-endpoint
API_USER_HEADER = "X-Api-User"
API_KEY_HEADER = "X-Api-Key"

ACME_CHALLENGE_LABEL = "_acme-challenge"
