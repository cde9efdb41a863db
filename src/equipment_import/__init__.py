"""Equipment spreadsheet import tool.

Decodes laboratory equipment inventory spreadsheets, normalizes each row into a
canonical equipment record, validates it and submits the valid subset to the
lab-management API bulk-import endpoint.
"""

__version__ = "0.1.0"
