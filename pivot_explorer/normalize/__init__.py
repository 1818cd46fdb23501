from .relative_normalizer import RelativeNormalizer, NormalizedRows
