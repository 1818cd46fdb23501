from .query_codec import QueryCodec, DecodeResult
