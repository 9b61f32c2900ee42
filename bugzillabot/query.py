# bugzillabot/query.py
from urllib.parse import urlparse, parse_qs

# Web UI parameters the REST search endpoint rejects or ignores.
UI_ONLY_PARAMS = {"list_id", "query_format", "columnlist", "order_by_column"}


def params_from_query_url(query_url: str) -> dict:
    """
    Takes a full Bugzilla search URL (buglist.cgi?...) as copied from the web
    UI and extracts its parameters for use with Bug.search.
    """
    query_params = parse_qs(urlparse(query_url).query, keep_blank_values=True)

    if not query_params:
        raise ValueError(f"No search parameters found in the query URL: {query_url}")

    # Repeated keys (bug_status=NEW&bug_status=ASSIGNED) stay lists.
    api_params = {}
    for key, values in query_params.items():
        if key in UI_ONLY_PARAMS:
            continue
        api_params[key] = values[0] if len(values) == 1 else values
    return api_params
