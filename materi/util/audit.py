import json
from sqlalchemy.orm import Session
from materi.models.core import AuditLog

def audit(db: Session, actor_user_id: str | None, entity: str, entity_id: str | int,
          action: str, before: dict | None = None, after: dict | None = None):
    entry = AuditLog(
        actor_user_id=actor_user_id,
        entity=entity, entity_id=str(entity_id),
        action=action,
        before=json.dumps(before, default=str) if before else None,
        after=json.dumps(after, default=str) if after else None,
    )
    db.add(entry)
    return entry
