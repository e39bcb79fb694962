import logging

from fastapi import APIRouter, HTTPException, Query

from questionnaire.rules import evaluate_answers, validate_field
from questionnaire.schemas import (
    FIELD_TYPE_LIST,
    EvaluateIn,
    EvaluateOut,
    FieldType,
    FieldValidateIn,
    QuestionnaireSchema,
    create_default_field,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/questionnaire", tags=["questionnaire"])


@router.get("/field-types")
async def list_field_types():
    """Palette of field types the designer can place."""
    return [item.model_dump() for item in FIELD_TYPE_LIST]


@router.post("/fields")
async def new_field(
    field_type: FieldType = Query(..., alias="type", description="Palette type of the new field"),
    index: int = Query(0, ge=0, description="Position of the field in the designer"),
):
    return create_default_field(field_type, index).model_dump()


@router.post("/fields/validate")
async def validate_single_field(body: FieldValidateIn):
    """Validate one answer as the user types. Visibility is not considered here."""
    message = validate_field(body.field, body.value)
    return {"valid": message is None, "message": message}


@router.post("/schema/check")
async def check_schema(questionnaire: QuestionnaireSchema):
    # Authoring errors (bad patterns, dangling keys) are rejected with 422 while the body is parsed.
    logger.debug("schema accepted: %d fields, %d groups", len(questionnaire.fields), len(questionnaire.groups))
    return {
        "status": "ok",
        "fieldCount": len(questionnaire.fields),
        "groupCount": len(questionnaire.groups),
    }


@router.post("/evaluate", response_model=EvaluateOut)
async def evaluate(body: EvaluateIn):
    passed, visibility, errors = evaluate_answers(body.schemaDefinition, body.answers)
    hidden = [key for key, visible in visibility.items() if not visible]
    logger.info(
        "evaluated %d fields: %d hidden, %d invalid",
        len(visibility), len(hidden), len(errors),
    )
    return {"valid": passed, "visibility": visibility, "errors": errors}


@router.post("/validate")
async def validate_submission(body: EvaluateIn):
    """Gate a submission: 400 with every visible field's message when anything is invalid."""
    passed, visibility, errors = evaluate_answers(body.schemaDefinition, body.answers)
    if not passed:
        logger.info("submission rejected, invalid fields: %s", ", ".join(errors))
        raise HTTPException(
            status_code=400,
            detail={"message": "; ".join(errors.values()), "errors": errors},
        )

    return {
        "status": "ok",
        "visibleFields": [key for key, visible in visibility.items() if visible],
    }
