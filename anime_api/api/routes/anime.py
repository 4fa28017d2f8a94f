from __future__ import annotations

from fastapi import APIRouter, Depends, Response, status

from anime_api.core.deps import anime_service_dep, authorize_dep
from anime_api.domain.schemas import AnimeBatchItemIn, AnimeIn, AnimeOut, ErrorResponse
from anime_api.services.anime_service import AnimeService

router = APIRouter(
    prefix="/anime",
    dependencies=[Depends(authorize_dep)],
    responses={
        401: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
    },
)


@router.get("", response_model=list[AnimeOut])
async def list_all(service: AnimeService = Depends(anime_service_dep)) -> list[AnimeOut]:
    return [AnimeOut.from_entity(anime) async for anime in service.find_all()]


@router.get("/{anime_id}", response_model=AnimeOut, responses={404: {"model": ErrorResponse}})
async def find_by_id(anime_id: int, service: AnimeService = Depends(anime_service_dep)) -> AnimeOut:
    return AnimeOut.from_entity(await service.find_by_id(anime_id))


@router.post(
    "",
    response_model=AnimeOut,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}},
)
async def save(body: AnimeIn, service: AnimeService = Depends(anime_service_dep)) -> AnimeOut:
    return AnimeOut.from_entity(await service.save(body.to_entity()))


@router.post(
    "/batch",
    response_model=list[AnimeOut],
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}},
)
async def save_batch(body: list[AnimeBatchItemIn], service: AnimeService = Depends(anime_service_dep)) -> list[AnimeOut]:
    saved = await service.save_all([item.to_entity() for item in body])
    return [AnimeOut.from_entity(anime) for anime in saved]


@router.put(
    "/{anime_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def update(anime_id: int, body: AnimeIn, service: AnimeService = Depends(anime_service_dep)) -> Response:
    await service.update(body.to_entity(anime_id=anime_id))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete(
    "/{anime_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    responses={404: {"model": ErrorResponse}},
)
async def delete(anime_id: int, service: AnimeService = Depends(anime_service_dep)) -> Response:
    await service.delete(anime_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
