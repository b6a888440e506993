"""Sequential document numbers (INV-00001, PAY-00001, EMP-0001) per organization."""
from uuid import UUID

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession


async def next_document_number(
    db: AsyncSession,
    model,
    column_name: str,
    organization_id: UUID,
    prefix: str,
    width: int,
) -> str:
    """
    Generate the next number after the organization's highest one.

    Numbers outgrow their zero padding (EMP-9999, EMP-10000), so longer codes sort first.
    """
    column = getattr(model, column_name)
    result = await db.execute(
        select(column)
        .where(model.organization_id == organization_id)
        .order_by(func.length(column).desc(), column.desc())
        .limit(1)
    )
    last_code = result.scalar_one_or_none()

    if last_code:
        try:
            num = int(last_code.split("-")[-1])
            return f"{prefix}-{str(num + 1).zfill(width)}"
        except (IndexError, ValueError):
            pass

    return f"{prefix}-{str(1).zfill(width)}"
