from fastapi import APIRouter

import config

router = APIRouter()


@router.get("/health")
def health_check():
    missing = config.validate_config()

    return {
        "status": "ok",
        "missing_keys": missing,
        "listing_base_url": config.LISTING_BASE_URL,
        "max_pages_default": config.DEFAULT_MAX_PAGES,
        "max_detail_items": config.MAX_DETAIL_ITEMS,
    }
