from uuid import UUID
from fastapi import HTTPException, status

def validate_uuid(id: str):
    try:
        if isinstance(id, UUID):
            return id
        return UUID(id)
    except (ValueError, TypeError, AttributeError):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid UUID format")
