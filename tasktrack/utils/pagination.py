from fastapi import Query

MAX_PAGE_SIZE = 100


def get_pagination_params(
    skip: int = Query(0, ge=0, description="Rows to skip"),
    limit: int = Query(40, ge=1, le=MAX_PAGE_SIZE, description="Page size"),
) -> dict:
    return {"skip": skip, "limit": limit}
