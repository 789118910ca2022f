"""
Services package for the radiko harvest

Decoding, validation and transformation of upstream documents. The harvest
pipeline, scheduler and store backends live in their own modules.
"""
from radiko_harvest.services.xml_decoder_service import decode_xml
from radiko_harvest.services.validation_service import DocumentKind, require_valid, validate_document
from radiko_harvest.services.transform_service import to_schedule, to_stations

__all__ = [
    'decode_xml',
    'DocumentKind',
    'require_valid',
    'validate_document',
    'to_schedule',
    'to_stations',
]
