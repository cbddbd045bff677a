# Services package init
"""
Sloka API — Services Layer
===========================

Service Inventory:
    - selection.py:    pure offset / pagination / escaping functions
    - verse_store.py:  VerseStore, read queries over the slokas table
"""
