# Routes package init
"""
IdeaStore Backend — API Routes Package
========================================

Route Inventory:
    - entries.py: POST   /save              (create entry)
                  GET    /entries           (list metadata, newest first)
                  GET    /entries/{id}      (single metadata row)
                  GET    /content           (entry text by id or title)
                  GET    /load/{blob_id}    (entry text by Drive id)
                  PUT    /update/{id}       (replace content, recompute title)
                  DELETE /delete/{id}       (remove blob, then row)
    - health.py:  GET    /health            (database + Drive probe)

Routes stay THIN: read the request, call EntryService, return its result.
Errors are raised as IdeaStoreError subclasses and rendered by the handlers
registered in main.py.
"""
