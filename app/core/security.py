import logging
from fastapi import Depends, HTTPException, status, Query
from app.core.exceptions import StoreError
from app.db.store import DocumentStore, get_store

logger = logging.getLogger(__name__)

PROFILES = "profiles"

def get_current_user(
    user_id: str = Query(..., description="User ID for authentication"),
    store: DocumentStore = Depends(get_store),
):
    """
    Fetches user profile information by user ID.

    Args:
        user_id: User ID from query parameter
        store: Document store holding the profiles collection

    Returns:
        dict: User profile data with id, email, role and full_name

    Raises:
        HTTPException: 404 if user profile not found, 401 if it has no role
    """
    try:
        profile = store.get(PROFILES, user_id)

        if not profile:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="User profile not found"
            )

        # Ensure required fields are present
        if not profile.get("role"):
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="User profile incomplete. Role information missing."
            )

        return {
            "id": profile["id"],
            "email": profile.get("email"),
            "role": profile["role"],
            "full_name": profile.get("full_name"),
        }

    except HTTPException:
        # Re-raise HTTP exceptions as-is
        raise
    except StoreError as e:
        logger.error("Store error fetching profile: %s", e)
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Upstream error fetching profile"
        )
    except Exception as e:
        logger.exception("Unexpected error in get_current_user")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Internal error while fetching profile: {str(e)}"
        )
