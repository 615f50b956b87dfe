# Importing the package registers every table on Base.metadata
from memorylocks.models.user import User
from memorylocks.models.lock import Lock
from memorylocks.models.media_object import MediaObject

__all__ = ["User", "Lock", "MediaObject"]
