"""Exception hierarchy for the document store and generation pipeline.

Families map one-to-one onto the HTTP status the API answers with:
  InvalidInputError    → 400
  NotFoundError        → 404
  ConflictError        → 409
  UpstreamFailureError → 502
  InconsistencyError   → 500
"""


class PdfManError(Exception):
    """Base class for every error raised by the core."""


##########################################
############ INVALID INPUT ###############
##########################################

class InvalidInputError(PdfManError):
    """Request rejected before any mutation happened."""


class InvalidNameError(InvalidInputError):
    """Topic name is empty or contains a path separator / parent reference."""


##########################################
############### NOT FOUND ################
##########################################

class NotFoundError(PdfManError):
    pass


class TopicNotFoundError(NotFoundError):
    pass


class DocumentNotFoundError(NotFoundError):
    pass


class SummaryNotFoundError(NotFoundError):
    pass


class TemplateNotFoundError(NotFoundError):
    pass


##########################################
############### CONFLICT #################
##########################################

class ConflictError(PdfManError):
    pass


class AlreadyExistsError(ConflictError):
    pass


class TopicNotEmptyError(ConflictError):
    pass


class DestinationNotFoundError(ConflictError):
    """Move target topic does not exist. Moves never create topics."""


class ProtectedTemplateError(ConflictError):
    pass


##########################################
############ UPSTREAM FAILURE ############
##########################################

class UpstreamFailureError(PdfManError):
    pass


class SourceFetchFailedError(UpstreamFailureError):
    pass


class UnreadablePdfError(UpstreamFailureError):
    pass


class GenerationFailedError(UpstreamFailureError):
    pass


##########################################
############# INCONSISTENCY ##############
##########################################

class InconsistencyError(PdfManError):
    """Manifest, binary and summary of a document disagree on disk."""
