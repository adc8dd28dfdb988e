from marshmallow import Schema, fields


class ChannelStatsSchema(Schema):
    total_views = fields.Integer(data_key="totalViews")
    total_videos = fields.Integer(data_key="totalVideos")
    total_likes = fields.Integer(data_key="totalLikes")
    total_subscribers = fields.Integer(data_key="totalSubscribers")


class PageSchema(Schema):
    """Envelope for paginated listings; ``docs`` are already dumped."""
    docs = fields.Raw()
    total_docs = fields.Integer(data_key="totalDocs")
    limit = fields.Integer()
    page = fields.Integer()
    total_pages = fields.Integer(data_key="totalPages")
    paging_counter = fields.Integer(data_key="pagingCounter")
    has_prev_page = fields.Boolean(data_key="hasPrevPage")
    has_next_page = fields.Boolean(data_key="hasNextPage")
    prev_page = fields.Integer(data_key="prevPage", allow_none=True)
    next_page = fields.Integer(data_key="nextPage", allow_none=True)
