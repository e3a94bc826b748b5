# Services package init
"""
IdeaStore Backend — Services Layer
====================================

Service Inventory:
    - BlobStore (abstract): contract for remote blob storage
    - GoogleDriveBlobStore: BlobStore backed by the Drive v3 API
    - ScratchService: request-scoped temporary files for blob payloads
    - content_codec: gzip compression of entry text
    - EntryRepository: CRUD over `entries` rows
    - EntryService: save / load / update / delete orchestration
"""
