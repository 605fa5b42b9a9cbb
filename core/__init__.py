# BucketWatch Core Modules

from .models import ImageRecord, Stats, SortBy, DateFilter, SyncState, DashboardSnapshot, SyncError, MutationError
from .storage_models import StoredObject, ListPage, StorageError
from .categories import IMAGE_EXTENSIONS, is_image_key
from .utils import format_size
