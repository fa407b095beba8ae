from concurrent.futures import ThreadPoolExecutor


def map_in_order(fn, items, workers=1):
    """
    Apply fn to every item and return the results in input order.
    workers <= 1 runs inline; otherwise a bounded thread pool is used and the
    first exception is re-raised once all submitted work is joined.
    """
    items = list(items)
    if workers <= 1 or len(items) <= 1:
        return [fn(item) for item in items]
    with ThreadPoolExecutor(max_workers=min(workers, len(items))) as pool:
        return list(pool.map(fn, items))
