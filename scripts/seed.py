"""Seed the database with sample users, posts and comments.

Everything goes through the services, so the writes are transactional and
every domain event is published (the audit subscriber logs them).
"""
import argparse
import asyncio
import random
import time

from social.cache import cache
from social.config import configure_logging
from social.container import Container
from social.context import background_context
from social.database import Base, async_session, engine
from social.schemas import CommentCreate, PostCreate, UserCreate

# Imported for table registration on Base.metadata.
import social.models  # noqa: F401

TAGS = ["python", "fastapi", "postgresql", "redis", "docker", "kubernetes",
        "react", "typescript", "aws", "devops", "testing", "performance",
        "security", "microservices", "graphql", "rest-api"]


async def seed(small: bool = False):
    num_users = 5 if small else 50
    num_posts = 20 if small else 1000
    max_comments_per_post = 2 if small else 5

    print(f"Seeding: {num_users} users, {num_posts} posts, up to {max_comments_per_post} comments per post")
    start = time.perf_counter()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    container = Container(async_session, cache)
    ctx = background_context()

    users = []
    for i in range(num_users):
        user = await container.users.create_user(
            ctx,
            UserCreate(
                username=f"user_{i:04d}",
                email=f"user_{i:04d}@example.com",
                password="password123",
            ),
        )
        users.append(user)
    print(f"  Created {len(users)} users")

    total_comments = 0
    for i in range(num_posts):
        author = random.choice(users)
        post = await container.posts.create_post(
            ctx.with_user(author.id),
            author.id,
            PostCreate(
                title=f"Post {i}: notes on {random.choice(TAGS)}",
                content=f"This is the full content of post {i}. " * 10,
                tags=random.sample(TAGS, k=random.randint(1, 4)),
            ),
        )
        for _ in range(random.randint(0, max_comments_per_post)):
            commenter = random.choice(users)
            await container.comments.create_comment(
                ctx.with_user(commenter.id),
                post.id,
                commenter.id,
                CommentCreate(content=f"Thanks for sharing, {author.username}!"),
            )
            total_comments += 1

    await engine.dispose()

    elapsed = time.perf_counter() - start
    print(f"\nSeeding complete in {elapsed:.1f}s")
    print(f"  Users: {num_users}")
    print(f"  Posts: {num_posts}")
    print(f"  Comments: {total_comments}")
    print(f"  Transactions: {container.transactions.calls}")


def main():
    parser = argparse.ArgumentParser(description="Seed the social database")
    parser.add_argument("--small", action="store_true", help="Use a small dataset (20 posts)")
    args = parser.parse_args()
    configure_logging()
    asyncio.run(seed(small=args.small))


if __name__ == "__main__":
    main()
