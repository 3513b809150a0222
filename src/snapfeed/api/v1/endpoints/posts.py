# src/snapfeed/api/v1/endpoints/posts.py
"""Post-related endpoints for the Snapfeed API."""

from fastapi import APIRouter, File, Form, Query, UploadFile, status

from snapfeed.api.v1.dependencies import AuthDep, MediaStorageDep, SessionDep
from snapfeed.core.settings import settings
from snapfeed.schemas.common import SuccessResponse
from snapfeed.schemas.post import (
    CommentCreate,
    CommentCreatedResponse,
    CommentDeletedResponse,
    CommentResponse,
    FeedResponse,
    LikeResponse,
    PostResponse,
)
from snapfeed.services import engagement, post_service

router = APIRouter(prefix="/posts", tags=["posts"])


@router.post("", response_model=PostResponse, status_code=status.HTTP_201_CREATED)
async def create_post(
    auth: AuthDep,
    db: SessionDep,
    storage: MediaStorageDep,
    media: UploadFile = File(..., description="Image or video, up to 10 MiB"),
    caption: str = Form(""),
    group_id: int | None = Form(None),
    place_id: str | None = Form(None),
    place_name: str | None = Form(None),
    place_address: str | None = Form(None),
    place_lat: str | None = Form(None),
    place_lng: str | None = Form(None),
) -> PostResponse:
    """Create a post from a multipart upload.

    Args:
        auth: Caller identity
        db: Database session
        storage: Media storage receiving the upload
        media: Uploaded image or video
        caption: Optional caption; hashtags and mentions are extracted from it
        group_id: Optional group to post into (members only)
        place_id: External place identifier
        place_name: Place display name
        place_address: Place formatted address
        place_lat: Place latitude
        place_lng: Place longitude

    Returns:
        The created post

    Raises:
        InvalidInputError: For invalid media, caption or place data
        ForbiddenError: If posting to a group the caller is not in
    """
    # At most one byte past the size limit is read.
    data = await media.read(settings.media_max_bytes + 1)
    place = post_service.build_place_data(
        place_id, place_name, place_address, place_lat, place_lng
    )
    post = post_service.create_post(
        db,
        auth.acting_user_id,
        caption=caption,
        media=post_service.MediaUpload(data=data, content_type=media.content_type),
        storage=storage,
        group_id=group_id,
        place=place,
    )
    return post_service.to_post_list(db, [post], auth.acting_user_id)[0]


@router.get("/feed", response_model=FeedResponse)
async def home_feed(
    auth: AuthDep,
    db: SessionDep,
    page: int = Query(1, ge=1),
    limit: int = Query(post_service.HOME_FEED_DEFAULT_LIMIT, ge=1, le=100),
) -> FeedResponse:
    """Posts by the caller, followed users and the caller's groups."""
    posts, total = post_service.home_feed(db, auth.acting_user_id, page=page, limit=limit)
    return FeedResponse(
        items=post_service.to_post_list(db, posts, auth.acting_user_id),
        total=total,
        page=page,
        limit=limit,
        has_more=page * limit < total,
    )


@router.get("/explore", response_model=list[PostResponse])
async def explore_feed(
    auth: AuthDep,
    db: SessionDep,
    limit: int = Query(post_service.EXPLORE_FEED_LIMIT, ge=1, le=100),
) -> list[PostResponse]:
    """Newest posts visible to the caller."""
    posts = post_service.explore_feed(db, auth.acting_user_id, limit)
    return post_service.to_post_list(db, posts, auth.acting_user_id)


@router.get("/{post_id}", response_model=PostResponse)
async def get_post(post_id: int, auth: AuthDep, db: SessionDep) -> PostResponse:
    """Return a single post."""
    post = post_service.get_post(db, post_id, auth.acting_user_id)
    return post_service.to_post_list(db, [post], auth.acting_user_id)[0]


@router.delete("/{post_id}", response_model=SuccessResponse)
async def delete_post(
    post_id: int,
    auth: AuthDep,
    db: SessionDep,
    storage: MediaStorageDep,
) -> SuccessResponse:
    """Delete one of the caller's posts along with its media."""
    post_service.delete_post(db, auth.acting_user_id, post_id, storage)
    return SuccessResponse(message="Post deleted")


@router.post("/{post_id}/like", response_model=LikeResponse)
async def toggle_like(post_id: int, auth: AuthDep, db: SessionDep) -> LikeResponse:
    """Like the post, or remove the caller's like if present."""
    liked, count = engagement.toggle_like(db, auth.acting_user_id, post_id)
    return LikeResponse(liked=liked, likes_count=count)


@router.post(
    "/{post_id}/comment",
    response_model=CommentCreatedResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_comment(
    post_id: int,
    payload: CommentCreate,
    auth: AuthDep,
    db: SessionDep,
) -> CommentCreatedResponse:
    """Append a comment to the post."""
    comment, count = engagement.add_comment(db, auth.acting_user_id, post_id, payload.text)
    return CommentCreatedResponse(
        comment=CommentResponse.model_validate(comment),
        comments_count=count,
    )


@router.get("/{post_id}/comments", response_model=list[CommentResponse])
async def list_comments(post_id: int, auth: AuthDep, db: SessionDep) -> list[CommentResponse]:
    """List the post's comments, oldest first."""
    return [
        CommentResponse.model_validate(comment)
        for comment in engagement.list_comments(db, auth.acting_user_id, post_id)
    ]


@router.delete("/{post_id}/comments/{comment_id}", response_model=CommentDeletedResponse)
async def delete_comment(
    post_id: int,
    comment_id: int,
    auth: AuthDep,
    db: SessionDep,
) -> CommentDeletedResponse:
    """Delete one of the caller's own comments."""
    count = engagement.delete_comment(db, auth.acting_user_id, post_id, comment_id)
    return CommentDeletedResponse(comments_count=count)
