# Services package.
#
#   base            — generic Service, a pass-through over a Repository plus
#                     filter conveniences; one instance per entity
#   member_service  — login and paginated listing for Member
#   webhook_service — sold-out payload collection and webhook delivery
#
# Services receive their Repository (and through it the AsyncSession) from
# the dependency providers in ``farmers_market.dependencies`` so the router
# layer controls the transaction boundary via ``get_db``.
