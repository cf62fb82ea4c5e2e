import datetime as dt

from typing_extensions import Annotated

from sqlalchemy import DateTime, func
from sqlalchemy.orm import mapped_column


intpk = Annotated[int, mapped_column(primary_key=True)]

created_at = Annotated[
    dt.datetime,
    mapped_column(DateTime(timezone=True), default=func.now(), server_default=func.now()),
]

updated_at = Annotated[
    dt.datetime,
    mapped_column(
        DateTime(timezone=True),
        default=func.now(),
        server_default=func.now(),
        onupdate=func.now(),
    ),
]
