from foundation.helpers.slugs import dedup_candidates, id_suffix, normalize_slug, parse_slug_list

__all__ = ["normalize_slug", "id_suffix", "dedup_candidates", "parse_slug_list"]
