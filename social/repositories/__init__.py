# Repositories package.
#
# One repository per aggregate, all built on ``SoftDeleteRepository``:
#
#   user_repository      users, plus username/email uniqueness probes
#   post_repository      posts with tag resolution, title search, tag filter
#   comment_repository   comments scoped to a post
#
# Every method takes a ``RequestContext`` first and runs on the context's
# transaction when one is attached (see ``social.transactions``).
from social.repositories.comment_repository import CommentRepository
from social.repositories.post_repository import PostRepository
from social.repositories.user_repository import UserRepository

__all__ = ["CommentRepository", "PostRepository", "UserRepository"]
