"""
Traverse API Endpoints
"""
from fastapi import APIRouter, HTTPException, Response, status
from pydantic import BaseModel, Field
from typing import Dict, Any, List, Optional
import logging
import re

from pipelines.export.dxf_encoder import Annotation, DXFEncoder, DXFEncodingError
from pipelines.traverse.pipeline import TraversePipeline, combine_coordinates
from pipelines.traverse.schemas import TraverseRequest
from pipelines.traverse.traverse import TraverseError, TraverseInputError
from utils.response_models import OptionsResponse, TraverseResponse

logger = logging.getLogger(__name__)
router = APIRouter()


class AnnotationModel(BaseModel):
    text: str
    northing: float
    easting: float
    height: Optional[float] = None
    rotation: float = 0.0


class ExportDXFRequest(TraverseRequest):
    filename: Optional[str] = None
    side_by_side: bool = False
    annotations: List[AnnotationModel] = Field(default_factory=list)


def _safe_filename(name: Optional[str]) -> str:
    cleaned = re.sub(r"[^A-Za-z0-9._-]+", "_", name or "").strip("._")
    return cleaned or "legal-description"


@router.post("/analyze", response_model=TraverseResponse)
async def analyze_traverse(request: TraverseRequest) -> Dict[str, Any]:
    """
    Compute coordinates, closure, area and diagnostics for each parcel
    """
    if not request.parcels:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing parcels in request"
        )

    try:
        pipeline = TraversePipeline()
        tie_line, results = pipeline.analyze(request)
    except TraverseInputError as e:
        logger.warning(f"Traverse input rejected: {str(e)}")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except TraverseError as e:
        logger.error(f"Traverse geometry failed: {str(e)}")
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))
    except Exception as e:
        logger.error(f"Traverse analysis failed: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Traverse analysis failed: {str(e)}"
        )

    return {
        "status": "success",
        "poc_description": request.poc_description,
        "poc_reference": request.poc_reference,
        "tie_line": tie_line.to_dict() if tie_line else None,
        "parcels": [r.to_dict() for r in results],
        "combined_coordinates": combine_coordinates(results) if len(results) > 1 else [],
        "metadata": {
            "total_parcels": len(results),
            "total_area_sqft": round(sum(r.area_sqft for r in results), 2),
            "requires_field_survey": any(r.requires_field_survey for r in results),
        },
    }


@router.post("/export-dxf")
async def export_dxf(request: ExportDXFRequest) -> Response:
    """
    Analyze the parcels and return them as a DXF attachment
    """
    try:
        pipeline = TraversePipeline()
        tie_line, results = pipeline.analyze(request)
        annotations = [Annotation(**a.model_dump()) for a in request.annotations]
        dxf = DXFEncoder().encode(results, tie_line, annotations, side_by_side=request.side_by_side)
    except TraverseInputError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except (TraverseError, DXFEncodingError) as e:
        logger.error(f"DXF export failed: {str(e)}")
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))
    except Exception as e:
        logger.error(f"DXF export failed: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to generate DXF: {str(e)}"
        )

    headers = {"Content-Disposition": f'attachment; filename="{_safe_filename(request.filename)}.dxf"'}
    return Response(content=dxf, media_type="application/dxf", headers=headers)


@router.get("/options", response_model=OptionsResponse)
async def get_traverse_options() -> Dict[str, Any]:
    """
    Get available traverse processing options
    """
    pipeline = TraversePipeline()
    return {
        "status": "success",
        "options": pipeline.get_available_options()
    }
