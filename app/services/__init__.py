# Services package.
#
#   aggregation_service  — AggregationEngine: fan-out/fan-in join of posts
#                          with their authors and comments, through the
#                          read-through ResourceCache
#   post_service         — PostService: request facade (id validation,
#                          delegation) consumed by the routers
#
# Both are constructed once per process in ``app.main``'s lifespan and
# reach the routers through the ``get_post_service`` dependency.
