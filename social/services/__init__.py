# Services package.
#
# One service per aggregate, each built on ``TransactionalService``:
#
#   user_service      registration, profile updates, soft delete, login check
#   post_service      post CRUD, title search, tag filter, cached reads
#   comment_service   comments scoped to a post
#   auth_service      register/login on top of UserService, token checks
#
# Every method takes a ``RequestContext`` first.  Mutations run their write
# inside ``TransactionManager.with_transaction`` and publish one domain event
# after commit.
from social.services.auth_service import AuthService
from social.services.comment_service import CommentService
from social.services.post_service import PostService
from social.services.user_service import UserService

__all__ = ["AuthService", "CommentService", "PostService", "UserService"]
