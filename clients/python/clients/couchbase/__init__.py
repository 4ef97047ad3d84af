from .config import (
    USERNAME,
    DEFAULT_BUCKET_NAME,
    HOST,
    PROTOCOL,
    auth,
    validate_config,
    get_cluster,
    check_connection
)
from .keyspace import (
    Keyspace,
    get_keyspace
)
from .base_model import (
    BaseModelCouchbase,
    BaseCouchbaseEntityData,
    DataT,
    T
)

from couchbase.exceptions import DocumentNotFoundException, CASMismatchException
