from fastapi import APIRouter, Depends, HTTPException, Request, Response
from loguru import logger

from ..core.config import Settings
from ..core.dependencies import (
    get_annotation_replacer,
    get_image_query_service,
    get_settings_dependency,
    get_upload_dispatcher,
)
from ..core.exceptions import (
    BlobNotFoundError,
    BlobStoreError,
    ClientInputError,
    ImageNotFoundError,
    MetadataError,
)
from ..schemas import (
    AnnotationGroup,
    AnnotationSetResponse,
    RandomImageResponse,
    UploadAcceptedResponse,
)
from ..services.annotation_replacer import AnnotationReplacer
from ..services.image_query import ImageQueryService
from ..services.multipart_ingest import ingest_multipart
from ..services.upload_dispatcher import UploadDispatcher

router = APIRouter()


@router.post("/upload_file", status_code=202, response_model=UploadAcceptedResponse)
async def upload_file(
    request: Request,
    dispatcher: UploadDispatcher = Depends(get_upload_dispatcher),
    settings: Settings = Depends(get_settings_dependency),
):
    """
    Store every field of a multipart body as a new image.

    Each field becomes a background upload; the response does not wait for
    them, and individual upload failures are only visible in the logs.

    Raises:
        HTTPException: 400 for malformed multipart input, 413 for an
            oversized field
    """
    try:
        dispatched = await ingest_multipart(
            request.headers.get("content-type"),
            request.stream(),
            dispatcher,
            max_field_size=settings.MAX_FIELD_SIZE,
        )
    except ClientInputError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))

    return UploadAcceptedResponse(
        fields_dispatched=dispatched,
        message=f"Uploading {dispatched} images",
    )


@router.get("/get_image_data/{image_id}")
async def get_image_data(
    image_id: int,
    image_query: ImageQueryService = Depends(get_image_query_service),
):
    """Serve the stored bytes of an image with their original content type."""
    try:
        blob = await image_query.fetch_blob(image_id)
    except BlobNotFoundError:
        raise HTTPException(status_code=404, detail=f"Image {image_id} not found")
    except BlobStoreError:
        raise HTTPException(status_code=500, detail="Couldn't get image from storage")

    return Response(content=blob.data, media_type=blob.content_type)


@router.post("/add_annotations/{image_id}", response_model=AnnotationSetResponse)
async def add_annotations(
    image_id: int,
    annotation_group: AnnotationGroup,
    replacer: AnnotationReplacer = Depends(get_annotation_replacer),
):
    """
    Replace all annotations of an image.

    Args:
        image_id: Identifier of the annotated image
        annotation_group: Full annotation set plus the canvas size it was
            drawn on

    Raises:
        HTTPException: 404 if the image does not exist, 500 if the
            transaction failed (previous annotations are kept)
    """
    logger.info(
        f"Received {len(annotation_group.annotations)} annotations for image {image_id}"
    )

    try:
        annotation_set = await replacer.replace(
            image_id,
            [box.to_domain() for box in annotation_group.annotations],
            annotation_group.width,
            annotation_group.height,
        )
    except ImageNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except MetadataError:
        raise HTTPException(status_code=500, detail="Couldn't save annotations")

    return AnnotationSetResponse.from_domain(annotation_set)


@router.get("/images/random", response_model=RandomImageResponse)
async def get_random_image(
    request: Request,
    image_query: ImageQueryService = Depends(get_image_query_service),
):
    """Pick an image that has not been annotated yet."""
    try:
        image_id = await image_query.random_unannotated_image()
    except MetadataError as e:
        logger.error(f"Error picking a random image: {e}")
        raise HTTPException(status_code=500, detail="Internal server error")

    if image_id is None:
        raise HTTPException(status_code=404, detail="No images left to annotate")

    return RandomImageResponse(
        image_id=image_id,
        url=str(request.url_for("get_image_data", image_id=image_id).path),
    )


@router.get("/images/{image_id}/annotations", response_model=AnnotationSetResponse)
async def get_annotations(
    image_id: int,
    image_query: ImageQueryService = Depends(get_image_query_service),
):
    try:
        annotation_set = await image_query.get_annotation_set(image_id)
    except ImageNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except MetadataError as e:
        logger.error(f"Error reading annotations for image {image_id}: {e}")
        raise HTTPException(status_code=500, detail="Internal server error")

    return AnnotationSetResponse.from_domain(annotation_set)


@router.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "service": "image-annotation"}
