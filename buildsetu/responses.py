from buildsetu.pagination import Page


def ok(data) -> dict:
    return {"success": True, "data": data}


def paginated(page: Page, serialize) -> dict:
    return {
        "success": True,
        "data": [serialize(item) for item in page.items],
        "pagination": page.meta(),
    }


def iso(value):
    return value.isoformat() if value else None


def money(value):
    # Decimal → "1100.00", never a float
    return str(value) if value is not None else None
