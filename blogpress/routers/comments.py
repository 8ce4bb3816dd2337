"""Comments router for actions on a single comment."""

import logging
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from blogpress import moderation
from blogpress.auth import get_current_user
from blogpress.database import get_db
from blogpress.models import User

# Configure logging
logger = logging.getLogger(__name__)

router = APIRouter(prefix="/comments", tags=["Comments"])


# DELETE /comments/{comment_id}
@router.delete("/{comment_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_comment(
    comment_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Delete one of your own comments, with its replies.

    Raises:
        NotFound: If the comment does not exist
        AuthorizationFailed: If the comment belongs to someone else
    """
    logger.info(f"Delete requested for comment {comment_id} by {current_user.email}")
    comment = moderation.get_comment(db, comment_id)
    moderation.delete_comment(db, comment, current_user)
