from ..models import CategoryWithVideos, Video

UNCATEGORIZED = "Uncategorized"

# Standard YouTube video category taxonomy (videoCategories.list).
CATEGORY_NAMES = {
    "1": "Film & Animation",
    "2": "Autos & Vehicles",
    "10": "Music",
    "15": "Pets & Animals",
    "17": "Sports",
    "18": "Short Movies",
    "19": "Travel & Events",
    "20": "Gaming",
    "21": "Videoblogging",
    "22": "People & Blogs",
    "23": "Comedy",
    "24": "Entertainment",
    "25": "News & Politics",
    "26": "Howto & Style",
    "27": "Education",
    "28": "Science & Technology",
    "29": "Nonprofits & Activism",
    "30": "Movies",
    "31": "Anime/Animation",
    "32": "Action/Adventure",
    "33": "Classics",
    "34": "Comedy",
    "35": "Documentary",
    "36": "Drama",
    "37": "Family",
    "38": "Foreign",
    "39": "Horror",
    "40": "Sci-Fi/Fantasy",
    "41": "Thriller",
    "42": "Shorts",
    "43": "Shows",
    "44": "Trailers",
}


def category_name(category_id: str) -> str:
    if category_id == UNCATEGORIZED:
        return UNCATEGORIZED
    return CATEGORY_NAMES.get(category_id) or f"Category {category_id}"


def categorize_videos(videos: list[Video]) -> list[CategoryWithVideos]:
    """
    Group videos by categoryId, largest bucket first.
    Buckets of equal size keep the order in which their first video was seen.
    """
    buckets: dict[str, CategoryWithVideos] = {}
    for video in videos:
        key = video.category_id or UNCATEGORIZED
        bucket = buckets.get(key)
        if bucket is None:
            bucket = CategoryWithVideos(id=key, name=category_name(key))
            buckets[key] = bucket
        bucket.videos.append(video)

    return sorted(buckets.values(), key=lambda bucket: len(bucket.videos), reverse=True)
