from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from shared.config import Settings
from shared.database import db_dependency
from shared.identity import Caller, current_caller
from .schemas import (
    CourseMappingIn, CourseMappingUpdate, ApproveIn,
    CourseMappingOut, PendingMappingOut, CourseSearchOut, PaginationOut,
    FilterOptionsOut, CheckOut, StatsOut, HomeCourseOut,
    normalize_code,
)
from .search import CourseSearch, clamp_limit, parse_int, total_pages
from .crud import (
    DuplicateMappingError,
    search_mappings, mapping_exists, create_mapping,
    update_mapping, approve_mapping, delete_mapping,
    list_pending, filter_options, stats, search_home_courses,
)

NOT_FOUND = "Course mapping not found"
HOME_COURSE_LIMIT = 10


def require_admin(request: Request) -> Caller:
    caller = current_caller(request)
    if caller is None:
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Authentication required")
    if not caller.is_admin:
        raise HTTPException(status.HTTP_403_FORBIDDEN, "Admin privileges required")
    return caller


def build_router(SessionLocal, settings: Settings) -> APIRouter:
    router = APIRouter()
    get_db = db_dependency(SessionLocal)

    @router.get("/approved-courses", response_model=CourseSearchOut, tags=["Course bank"])
    def search(
        request: Request,
        page: str | None = None,
        limit: str | None = None,
        search: str | None = None,
        university: str | None = None,
        country: str | None = None,
        ects: str | None = None,
        verified: str | None = None,
        user_id: str | None = None,
        db: Session = Depends(get_db),
    ):
        # raw strings: bad numbers are ignored rather than rejected
        params = CourseSearch.from_query(
            page=page, limit=limit, search=search,
            university=university, country=country, ects=ects,
            verified=verified, user_id=user_id,
            default_limit=settings.default_page_size,
            max_limit=settings.max_page_size,
        )
        rows, total = search_mappings(db, params, current_caller(request))
        return CourseSearchOut(
            courses=[CourseMappingOut.from_row(m) for m in rows],
            pagination=PaginationOut(
                page=params.page,
                limit=params.limit,
                total=total,
                totalPages=total_pages(total, params.limit),
            ),
        )

    @router.post("/approved-courses", response_model=CourseMappingOut,
                 status_code=status.HTTP_201_CREATED, tags=["Course bank"])
    def submit(payload: CourseMappingIn, request: Request, db: Session = Depends(get_db)):
        try:
            m = create_mapping(db, payload.model_dump(), current_caller(request))
        except DuplicateMappingError as e:
            raise HTTPException(status.HTTP_409_CONFLICT, str(e))
        return CourseMappingOut.from_row(m)

    @router.get("/approved-courses/filters", response_model=FilterOptionsOut, tags=["Course bank"])
    def filters(request: Request, db: Session = Depends(get_db)):
        return filter_options(db, current_caller(request))

    @router.get("/approved-courses/check", response_model=CheckOut, tags=["Course bank"])
    def check(
        home_code: str | None = None,
        partner_code: str | None = None,
        university: str | None = None,
        db: Session = Depends(get_db),
    ):
        if not home_code or not partner_code or not university:
            raise HTTPException(
                status.HTTP_400_BAD_REQUEST,
                "Missing required parameters: home_code, partner_code, university",
            )
        return CheckOut(exists=mapping_exists(
            db, normalize_code(home_code), normalize_code(partner_code), university.strip()
        ))

    @router.get("/home-courses/search", response_model=list[HomeCourseOut], tags=["Course bank"])
    def home_courses(
        q: str = "",
        limit: str | None = None,
        db: Session = Depends(get_db),
    ):
        n = clamp_limit(parse_int(limit), HOME_COURSE_LIMIT, settings.max_page_size)
        return [HomeCourseOut.from_row(c) for c in search_home_courses(db, q, n)]

    @router.get("/stats", response_model=StatsOut, tags=["Course bank"])
    def get_stats(db: Session = Depends(get_db)):
        return stats(db)

    return router


def build_admin_router(SessionLocal) -> APIRouter:
    router = APIRouter(dependencies=[Depends(require_admin)])
    get_db = db_dependency(SessionLocal)

    @router.get("/pending-courses", response_model=list[PendingMappingOut], tags=["Admin"])
    def pending(db: Session = Depends(get_db)):
        return [PendingMappingOut.from_row(m) for m in list_pending(db)]

    @router.post("/approve-course", response_model=CourseMappingOut, tags=["Admin"])
    def approve(payload: ApproveIn, db: Session = Depends(get_db)):
        m = approve_mapping(db, payload.course_id)
        if not m:
            raise HTTPException(status.HTTP_404_NOT_FOUND, NOT_FOUND)
        return CourseMappingOut.from_row(m)

    @router.put("/courses/{course_id}", response_model=CourseMappingOut, tags=["Admin"])
    def update(course_id: int, payload: CourseMappingUpdate, db: Session = Depends(get_db)):
        try:
            m = update_mapping(db, course_id, payload.model_dump())
        except DuplicateMappingError:
            raise HTTPException(
                status.HTTP_409_CONFLICT,
                "A course mapping with these details already exists for this university",
            )
        if not m:
            raise HTTPException(status.HTTP_404_NOT_FOUND, NOT_FOUND)
        return CourseMappingOut.from_row(m)

    @router.delete("/courses/{course_id}", response_model=dict, tags=["Admin"])
    def remove(course_id: int, db: Session = Depends(get_db)):
        ok = delete_mapping(db, course_id)
        if not ok:
            raise HTTPException(status.HTTP_404_NOT_FOUND, NOT_FOUND)
        return {"deleted": True}

    return router
