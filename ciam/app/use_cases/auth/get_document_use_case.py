"""
Get Document Use Case

Returns the content of an active compliance document for the e-sign screen.
"""

from ciam.app.services.compliance_tracker import ComplianceTracker
from ciam.app.services.unit_of_work import UnitOfWork
from ciam.libs.result import Error, Result, Return
from .dtos import ComplianceDocumentResponse


class GetDocumentUseCase:
    def __init__(self, uow: UnitOfWork):
        self.uow = uow

    async def execute(self, document_id: str) -> Result[ComplianceDocumentResponse]:
        async with self.uow:
            document = await ComplianceTracker(self.uow).get_document(document_id)
            if document is None:
                return Return.err(Error("DOCUMENT_NOT_FOUND", "Compliance document not found"))

            return Return.ok(
                ComplianceDocumentResponse(
                    document_id=document.document_id,
                    title=document.title,
                    content=document.content,
                    version=document.version,
                    mandatory=document.mandatory,
                )
            )
