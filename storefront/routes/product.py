from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile
from fastapi.responses import Response
from pymongo.database import Database

from .. import catalog_service, order_service
from ..catalog_service import MAX_PHOTO_BYTES, PhotoUpload
from ..config import Settings, get_settings
from ..database import database_errors, get_db, to_json
from ..payment_gateway import BraintreePaymentGateway, get_gateway
from ..schemas import FilterRequest, PaymentRequest, Principal, ProductForm
from ..security import require_admin, require_sign_in

router = APIRouter(prefix="/api/v1/product", tags=["product"])


def product_form(
    name: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    price: Optional[str] = Form(None),
    category: Optional[str] = Form(None),
    quantity: Optional[str] = Form(None),
    shipping: Optional[str] = Form(None),
) -> ProductForm:
    return ProductForm(
        name=name,
        description=description,
        price=price,
        category=category,
        quantity=quantity,
        shipping=shipping,
    )


async def photo_upload(photo: Optional[UploadFile] = File(None)) -> Optional[PhotoUpload]:
    if photo is None or not photo.filename:
        return None
    # One byte past the limit is enough to reject the upload.
    data = await photo.read(MAX_PHOTO_BYTES + 1)
    return PhotoUpload(data=data, content_type=photo.content_type or "application/octet-stream")


@router.post("/create-product", status_code=201)
def create_product(
    form: ProductForm = Depends(product_form),
    photo: Optional[PhotoUpload] = Depends(photo_upload),
    principal: Principal = Depends(require_admin),
    db: Database = Depends(get_db),
):
    with database_errors("Error in creating product"):
        product = catalog_service.create_product(db, form, photo)
    return {"success": True, "message": "Product Created Successfully", "products": to_json(product)}


@router.put("/update-product/{pid}", status_code=201)
def update_product(
    pid: str,
    form: ProductForm = Depends(product_form),
    photo: Optional[PhotoUpload] = Depends(photo_upload),
    principal: Principal = Depends(require_admin),
    db: Database = Depends(get_db),
):
    with database_errors("Error in updating product"):
        product = catalog_service.update_product(db, pid, form, photo)
    return {"success": True, "message": "Product Updated Successfully", "products": to_json(product)}


@router.get("/get-product")
def get_products(db: Database = Depends(get_db)):
    with database_errors("Error in getting products"):
        products = catalog_service.get_products(db)
    return {
        "success": True,
        "countTotal": len(products),
        "message": "All Products",
        "products": to_json(products),
    }


@router.get("/get-product/{slug}")
def get_product(slug: str, db: Database = Depends(get_db)):
    with database_errors("Error while getting single product"):
        product = catalog_service.get_product(db, slug)
    return {"success": True, "message": "Single Product Fetched", "product": to_json(product)}


@router.get("/product-photo/{pid}")
def product_photo(pid: str, db: Database = Depends(get_db)):
    with database_errors("Error while getting photo"):
        photo = catalog_service.get_photo(db, pid)
    return Response(content=photo.data, media_type=photo.content_type)


@router.delete("/delete-product/{pid}")
def delete_product(
    pid: str,
    principal: Principal = Depends(require_admin),
    db: Database = Depends(get_db),
):
    with database_errors("Error while deleting product"):
        catalog_service.delete_product(db, pid)
    return {"success": True, "message": "Product Deleted successfully"}


@router.post("/product-filters")
def product_filters(req: FilterRequest, db: Database = Depends(get_db)):
    with database_errors("Error while filtering products", status_code=400):
        products = catalog_service.filter_products(db, req.checked, req.radio)
    return {"success": True, "products": to_json(products)}


@router.get("/product-count")
def product_count(db: Database = Depends(get_db)):
    with database_errors("Error in product count", status_code=400):
        total = catalog_service.count_products(db)
    return {"success": True, "total": total}


@router.get("/product-list")
@router.get("/product-list/{page}")
def product_list(page: int = 1, db: Database = Depends(get_db)):
    with database_errors("Error in per page listing", status_code=400):
        products = catalog_service.list_products(db, page)
    return {"success": True, "products": to_json(products)}


@router.get("/search/{keyword}")
def search_products(keyword: str, db: Database = Depends(get_db)):
    with database_errors("Error in search product API", status_code=400):
        return to_json(catalog_service.search_products(db, keyword))


@router.get("/related-product/{pid}/{cid}")
def related_products(pid: str, cid: str, db: Database = Depends(get_db)):
    with database_errors("Error while getting related products", status_code=400):
        products = catalog_service.related_products(db, pid, cid)
    return {"success": True, "products": to_json(products)}


@router.get("/product-category/{slug}")
def product_category(slug: str, db: Database = Depends(get_db)):
    with database_errors("Error while getting products", status_code=400):
        category, products = catalog_service.products_by_category(db, slug)
    return {"success": True, "category": to_json(category), "products": to_json(products)}


@router.get("/braintree/token")
def braintree_token(gateway: BraintreePaymentGateway = Depends(get_gateway)):
    return {"clientToken": order_service.get_client_token(gateway)}


@router.post("/braintree/payment")
def braintree_payment(
    req: PaymentRequest,
    principal: Principal = Depends(require_sign_in),
    db: Database = Depends(get_db),
    gateway: BraintreePaymentGateway = Depends(get_gateway),
    settings: Settings = Depends(get_settings),
):
    with database_errors("Error while saving order"):
        order_service.process_payment(
            db, gateway, principal.id, req.nonce, req.cart, reprice=settings.REPRICE_CART,
        )
    return {"ok": True}
