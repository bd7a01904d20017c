"""
ID generation for vault records.

- Documents: doc_xxx
- Folders: fld_xxx
"""

from uuid import uuid4


def generate_document_id() -> str:
    """
    Generate unique Document ID.

    Returns:
        ID in format "doc_xxx" where xxx is 12 hex characters
    """
    return f"doc_{uuid4().hex[:12]}"


def generate_folder_id() -> str:
    """
    Generate unique Folder ID.

    Returns:
        ID in format "fld_xxx" where xxx is 12 hex characters
    """
    return f"fld_{uuid4().hex[:12]}"


__all__ = ["generate_document_id", "generate_folder_id"]
