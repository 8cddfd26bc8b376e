from typing import Optional

from sqlalchemy import func
from sqlmodel import Session, select

from cloudfs.models import Attachment


def fetch_storage_totals(session: Session, account_id: Optional[int] = None) -> dict[str, int]:
    files_stmt = select(func.count(Attachment.id)).where(Attachment.is_dir == False)  # noqa: E712
    bytes_stmt = select(func.coalesce(func.sum(Attachment.size_bytes), 0))
    if account_id is not None:
        files_stmt = files_stmt.where(Attachment.account_id == account_id)
        bytes_stmt = bytes_stmt.where(Attachment.account_id == account_id)

    total_files = session.exec(files_stmt).one()
    total_bytes = session.exec(bytes_stmt).one()

    return {
        "total_files": int(total_files or 0),
        "total_bytes": int(total_bytes or 0),
    }
